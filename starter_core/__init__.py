"""
Core Module Package.

This package contains the core primitives that the orchestrator
and every unit depend on.

Components:
- status: Lifecycle status and transition table
- exceptions: Custom exception hierarchy
"""

from .exceptions import (
    Severity,
    ErrorClassification,
    StarterException,
    ConfigurationError,
    ProtocolError,
    StateTransitionError,
    InvalidStateError,
    DuplicateRegistrationError,
    AlreadyRegisteredError,
    ChannelMisuseError,
    OrchestratorExistsError,
    LifecycleError,
    StartupError,
    HealthCheckError,
    UnhandledError,
)
from .status import RunningStatus, VALID_TRANSITIONS, can_transition, check_transition

__all__ = [
    "Severity",
    "ErrorClassification",
    "StarterException",
    "ConfigurationError",
    "ProtocolError",
    "StateTransitionError",
    "InvalidStateError",
    "DuplicateRegistrationError",
    "AlreadyRegisteredError",
    "ChannelMisuseError",
    "OrchestratorExistsError",
    "LifecycleError",
    "StartupError",
    "HealthCheckError",
    "UnhandledError",
    "RunningStatus",
    "VALID_TRANSITIONS",
    "can_transition",
    "check_transition",
]
