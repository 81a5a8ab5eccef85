"""
Adapters - Unhandled Faults.

============================================================
RESPONSIBILITY
============================================================
Funnels process-level unhandled exceptions into the orchestrator.

- Event loop exception handler (unretrieved task exceptions,
  failing callbacks)
- threading.excepthook for background threads
- Raises UNHANDLED, then stops with SYSTEM_ERROR when
  stop_on_unhandled_exception is set, or exits with SYSTEM_ERROR
  if everything is already stopped
- Loop contexts without an exception are logged only

============================================================
"""

import asyncio
import logging
import os
import threading
from typing import Any, Callable, Dict, Optional, Set

from starter_core.exceptions import UnhandledError
from starter_core.status import RunningStatus

from ..core import Orchestrator
from ..events import Event
from ..models import ExitCode


class UnhandledFaultAdapter:
    """Routes unhandled exceptions to the UNHANDLED event."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        exit_func: Callable[[int], Any] = os._exit,
    ):
        """
        Args:
            orchestrator: Orchestrator to report to
            exit_func: Called with an exit code when a fault arrives
                after everything has stopped
        """
        self._orchestrator = orchestrator
        self._exit = exit_func
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._previous_loop_handler: Optional[Callable] = None
        self._previous_thread_hook: Optional[Callable] = None
        self._tasks: Set[asyncio.Task] = set()
        self._logger = logging.getLogger(__name__)

    # --------------------------------------------------------
    # Install / uninstall
    # --------------------------------------------------------

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Install the loop exception handler and the thread hook."""
        self._loop = loop or asyncio.get_running_loop()

        self._previous_loop_handler = self._loop.get_exception_handler()
        self._loop.set_exception_handler(self._loop_exception_handler)

        self._previous_thread_hook = threading.excepthook
        threading.excepthook = self._thread_excepthook

    def uninstall(self) -> None:
        """Restore the previous handlers."""
        if self._loop is not None and not self._loop.is_closed():
            self._loop.set_exception_handler(self._previous_loop_handler)
        if self._previous_thread_hook is not None:
            threading.excepthook = self._previous_thread_hook
            self._previous_thread_hook = None

    # --------------------------------------------------------
    # Hooks
    # --------------------------------------------------------

    def _loop_exception_handler(
        self,
        loop: asyncio.AbstractEventLoop,
        context: Dict[str, Any],
    ) -> None:
        error = context.get("exception")
        if error is None:
            details = {k: repr(v) for k, v in context.items() if k != "message"}
            self._logger.warning(
                f"Event loop reported: {context.get('message', 'no message')} {details}"
            )
            return
        self.handle(error)

    def _thread_excepthook(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        error = args.exc_value
        if error is None:
            error = UnhandledError(
                message=f"Unhandled {args.exc_type.__name__} in thread "
                f"{args.thread.name if args.thread else '?'}",
            )
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self.handle, error)

    # --------------------------------------------------------
    # Handling
    # --------------------------------------------------------

    def handle(self, error: BaseException) -> asyncio.Task:
        """
        Report an unhandled fault.

        Returns:
            The task raising UNHANDLED and applying the stop policy
        """
        self._logger.critical(
            f"{self._orchestrator.name} caught an unhandled exception: {error}",
            exc_info=(type(error), error, error.__traceback__),
        )
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._process(error))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _process(self, error: BaseException) -> None:
        await self._orchestrator.emit(Event.UNHANDLED, error)

        if not self._orchestrator.config.stop_on_unhandled_exception:
            return
        if self._orchestrator.status.is_active:
            await self._orchestrator.stop(ExitCode.SYSTEM_ERROR)
        elif self._orchestrator.status == RunningStatus.STOPPED:
            self._logger.critical(f"{self._orchestrator.name} is stopped, exiting")
            self._exit(ExitCode.SYSTEM_ERROR)


__all__ = [
    "UnhandledFaultAdapter",
]
