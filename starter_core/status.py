"""
Core Module - Running Status.

============================================================
RESPONSIBILITY
============================================================
Defines the lifecycle status shared by units and the orchestrator.

- Enumerates the four lifecycle states
- Declares the valid transitions between them
- Validates transition requests

============================================================
STATE MACHINE
============================================================
    stopped -> starting -> running -> stopping -> stopped
                   |                     ^
                   +---------------------+
                     (rollback / interrupted start)

============================================================
"""

from enum import Enum
from typing import Dict, Optional, Set

from .exceptions import StateTransitionError


# ============================================================
# RUNNING STATUS
# ============================================================

class RunningStatus(Enum):
    """Lifecycle status enumeration."""

    STOPPED = "stopped"
    """Not running. Initial and final state."""

    STARTING = "starting"
    """Start hook in progress."""

    RUNNING = "running"
    """Started successfully and serving."""

    STOPPING = "stopping"
    """Stop hook in progress."""

    @property
    def is_active(self) -> bool:
        """Check if a stop pass has work to do for this status."""
        return self in (RunningStatus.STARTING, RunningStatus.RUNNING)

    @property
    def is_settled(self) -> bool:
        """Check if no lifecycle hook is in progress."""
        return self in (RunningStatus.STOPPED, RunningStatus.RUNNING)


# ============================================================
# STATUS TRANSITIONS
# ============================================================

VALID_TRANSITIONS: Dict[RunningStatus, Set[RunningStatus]] = {
    RunningStatus.STOPPED: {RunningStatus.STARTING},
    RunningStatus.STARTING: {RunningStatus.RUNNING, RunningStatus.STOPPING},
    RunningStatus.RUNNING: {RunningStatus.STOPPING},
    RunningStatus.STOPPING: {RunningStatus.STOPPED},
}


def can_transition(current: RunningStatus, target: RunningStatus) -> bool:
    """Check if a transition is valid."""
    return target in VALID_TRANSITIONS.get(current, set())


def check_transition(
    current: RunningStatus,
    target: RunningStatus,
    subject: Optional[str] = None,
) -> RunningStatus:
    """
    Validate a transition request.

    Args:
        current: Current status
        target: Requested status
        subject: Name of the unit or orchestrator, for the error context

    Returns:
        The target status

    Raises:
        StateTransitionError: If the transition is not allowed
    """
    if not can_transition(current, target):
        raise StateTransitionError(
            message=f"Invalid status transition: {current.value} -> {target.value}",
            from_state=current.value,
            to_state=target.value,
            subject=subject,
        )
    return target


__all__ = [
    "RunningStatus",
    "VALID_TRANSITIONS",
    "can_transition",
    "check_transition",
]
