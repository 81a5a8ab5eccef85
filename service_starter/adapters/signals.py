"""
Adapters - Signals.

============================================================
RESPONSIBILITY
============================================================
Maps SIGTERM / SIGINT onto orchestrator stop requests.

- running or starting : stop()
- stopping            : first signal prints a notice, a second one
                        inside the force-exit window exits at once
- stopped             : exit with NORMAL

============================================================
"""

import asyncio
import logging
import os
import signal
import sys
import time
from typing import Any, Callable, List, Optional, Set

from starter_core.status import RunningStatus

from ..core import Orchestrator
from ..models import ExitCode


class SignalAdapter:
    """Installs termination signal handlers on the running loop."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        exit_func: Callable[[int], Any] = os._exit,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            orchestrator: Orchestrator to stop
            exit_func: Called with an exit code when the process must end
            clock: Monotonic clock for the force-exit window
        """
        self._orchestrator = orchestrator
        self._exit = exit_func
        self._clock = clock
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._installed: List[signal.Signals] = []
        self._force_deadline: Optional[float] = None
        self._tasks: Set[asyncio.Task] = set()
        self._logger = logging.getLogger(__name__)

    @property
    def installed_signals(self) -> List[signal.Signals]:
        """Signals currently handled."""
        return list(self._installed)

    def wanted_signals(self) -> List[signal.Signals]:
        """Signals enabled by configuration."""
        config = self._orchestrator.config
        wanted = []
        if config.stop_on_sigterm:
            wanted.append(signal.SIGTERM)
        if config.stop_on_sigint:
            wanted.append(signal.SIGINT)
        return wanted

    # --------------------------------------------------------
    # Install / uninstall
    # --------------------------------------------------------

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Install handlers for the configured signals."""
        self._loop = loop or asyncio.get_running_loop()

        for sig in self.wanted_signals():
            if sys.platform == "win32":
                # No loop signal support on Windows
                signal.signal(
                    sig,
                    lambda signum, frame: self._loop.call_soon_threadsafe(self.handle_signal, signum),
                )
            else:
                self._loop.add_signal_handler(sig, self.handle_signal, sig)
            self._installed.append(sig)

        self._logger.debug(f"Signal handlers installed: {[s.name for s in self._installed]}")

    def uninstall(self) -> None:
        """Restore default signal handling."""
        for sig in self._installed:
            if sys.platform == "win32":
                signal.signal(sig, signal.SIG_DFL)
            elif self._loop is not None and not self._loop.is_closed():
                self._loop.remove_signal_handler(sig)
        self._installed = []

    # --------------------------------------------------------
    # Handling
    # --------------------------------------------------------

    def handle_signal(self, signum: int) -> Optional[asyncio.Task]:
        """
        React to a termination signal.

        Returns:
            The stop task when a stop was requested
        """
        name = signal.Signals(signum).name
        status = self._orchestrator.status
        self._logger.info(f"Received signal {name} while {status.value}")

        if status.is_active:
            self._force_deadline = None
            task = asyncio.ensure_future(self._orchestrator.stop())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return task

        if status == RunningStatus.STOPPING:
            now = self._clock()
            if self._force_deadline is not None and now <= self._force_deadline:
                self._logger.warning(f"Second {name} while stopping, forcing exit")
                self._exit(ExitCode.SYSTEM_ERROR)
            else:
                window = self._orchestrator.config.force_exit_window_seconds
                self._force_deadline = now + window
                self._logger.warning(
                    f"{self._orchestrator.name} is stopping, please wait "
                    f"(send the signal again within {window:g}s to force exit)"
                )
            return None

        self._exit(ExitCode.NORMAL)
        return None


__all__ = [
    "SignalAdapter",
]
