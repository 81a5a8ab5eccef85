"""
Service Starter - Unit.

============================================================
RESPONSIBILITY
============================================================
The contract every managed service implements.

- Lifecycle hooks: on_start, on_stop, on_health_check
- Local fault hook: on_error
- Error-report channel for faults found after start completed
- Read-only status, mutated only by the owning orchestrator

============================================================
HOOK RULES
============================================================
- on_start failures are raised, never reported through the channel
- on_stop should not raise; if it does the failure is recorded
- on_health_check is only called while running; raising = unhealthy
- on_error returns False to suppress, an exception to replace,
  or None to escalate the original error

============================================================
"""

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Union

from starter_core.exceptions import AlreadyRegisteredError, ChannelMisuseError
from starter_core.status import RunningStatus, check_transition

if TYPE_CHECKING:
    from .core import Orchestrator


ErrorListener = Callable[["Unit", BaseException], Awaitable[None]]
ErrorHookResult = Union[BaseException, bool, None]


class Unit(ABC):
    """
    Base class for managed services.

    Subclasses implement ``on_start`` and optionally the other hooks.
    Calling ``super().__init__()`` is only needed to override the name.
    """

    _name: Optional[str] = None
    _status: RunningStatus = RunningStatus.STOPPED
    _orchestrator: Optional["Orchestrator"] = None
    _error_listener: Optional[ErrorListener] = None

    def __init__(self, name: Optional[str] = None):
        self._name = name

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def name(self) -> str:
        """Unit name (default: class name)."""
        return self._name or type(self).__name__

    @property
    def status(self) -> RunningStatus:
        """Current lifecycle status."""
        return self._status

    @property
    def orchestrator(self) -> Optional["Orchestrator"]:
        """Owning orchestrator, None until registered."""
        return self._orchestrator

    # --------------------------------------------------------
    # Hooks
    # --------------------------------------------------------

    @abstractmethod
    async def on_start(self) -> None:
        """Start the unit."""

    async def on_stop(self) -> None:
        """Stop the unit."""

    async def on_health_check(self) -> None:
        """Raise if the unit is not healthy."""

    async def on_error(self, error: BaseException) -> ErrorHookResult:
        """
        Local fault hook, called before escalation.

        Args:
            error: Fault reported through the error-report channel

        Returns:
            False to suppress, an exception to escalate instead,
            or None to escalate ``error``
        """
        return error

    # --------------------------------------------------------
    # Error-report channel
    # --------------------------------------------------------

    async def report_error(self, error: BaseException) -> None:
        """
        Report a runtime fault and wait for escalation to finish.

        Raises:
            ChannelMisuseError: If the unit is not running
        """
        listener = self._check_channel()
        await listener(self, error)

    def report_error_nowait(self, error: BaseException) -> "asyncio.Task[None]":
        """
        Report a runtime fault from synchronous code.

        Must be called with a running event loop. Returns the
        escalation task.

        Raises:
            ChannelMisuseError: If the unit is not running
        """
        listener = self._check_channel()
        return asyncio.get_running_loop().create_task(listener(self, error))

    def _check_channel(self) -> ErrorListener:
        if self._status != RunningStatus.RUNNING or self._error_listener is None:
            raise ChannelMisuseError(self.name, self._status.value)
        return self._error_listener

    # --------------------------------------------------------
    # Sibling lookup
    # --------------------------------------------------------

    def lookup(self, name: str) -> Optional["Unit"]:
        """Find a sibling unit by name. None if unknown or unregistered."""
        if self._orchestrator is None:
            return None
        return self._orchestrator.lookup(name)

    # --------------------------------------------------------
    # Orchestrator-only mutators
    # --------------------------------------------------------

    def _bind(self, orchestrator: "Orchestrator", listener: ErrorListener) -> None:
        if self._orchestrator is not None:
            raise AlreadyRegisteredError(self.name, self._orchestrator.name)
        self._orchestrator = orchestrator
        self._error_listener = listener

    def _transition(self, target: RunningStatus) -> RunningStatus:
        previous = self._status
        self._status = check_transition(previous, target, subject=self.name)
        return previous

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} status={self._status.value}>"


__all__ = [
    "Unit",
    "ErrorListener",
    "ErrorHookResult",
]
