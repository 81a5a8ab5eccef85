"""
Adapters - Error Policy.

Applies the stop_on_error flag: an escalated unit error stops the
orchestrator with UNIT_ERROR. The stop runs as its own task so the
unit that reported the error is not blocked inside its own shutdown.
An error arriving after everything has stopped exits the process.
"""

import asyncio
import logging
import os
from typing import Any, Callable, List, Optional, Set

from starter_core.status import RunningStatus

from ..core import Orchestrator
from ..events import Event
from ..models import ExitCode
from ..unit import Unit


class ErrorPolicyAdapter:
    """Stops the orchestrator on escalated unit errors when configured."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        exit_func: Callable[[int], Any] = os._exit,
    ):
        self._orchestrator = orchestrator
        self._exit = exit_func
        self._tasks: Set[asyncio.Task] = set()
        self._logger = logging.getLogger(__name__)

    @property
    def pending(self) -> List[asyncio.Task]:
        """Stop tasks not yet finished."""
        return list(self._tasks)

    def install(self) -> None:
        self._orchestrator.on(Event.ERROR, self._on_error)

    def uninstall(self) -> None:
        self._orchestrator.off(Event.ERROR, self._on_error)

    def _on_error(self, error: BaseException, unit: Unit) -> Optional[asyncio.Task]:
        if not self._orchestrator.config.stop_on_error:
            return None
        if self._orchestrator.status == RunningStatus.STOPPED:
            self._logger.critical(
                f"{self._orchestrator.name} is stopped, exiting after error in unit {unit.name}"
            )
            self._exit(ExitCode.UNIT_ERROR)
            return None
        if not self._orchestrator.status.is_active:
            return None

        self._logger.warning(f"Stopping {self._orchestrator.name} after error in unit {unit.name}")
        task = asyncio.ensure_future(self._orchestrator.stop(ExitCode.UNIT_ERROR))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


__all__ = [
    "ErrorPolicyAdapter",
]
