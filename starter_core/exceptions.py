"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the service starter.

- Provides clear exception hierarchy
- Separates caller bugs (protocol faults) from runtime faults
- Supports error categorization for logging and adapters
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
StarterException (base)
├── ConfigurationError
├── ProtocolError
│   ├── StateTransitionError
│   ├── InvalidStateError
│   ├── DuplicateRegistrationError
│   ├── AlreadyRegisteredError
│   ├── ChannelMisuseError
│   └── OrchestratorExistsError
├── LifecycleError
│   ├── StartupError
│   └── HealthCheckError
└── UnhandledError

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels for logging."""

    LOW = "low"
    """Minor issue, informational."""

    MEDIUM = "medium"
    """Moderate issue, requires attention."""

    HIGH = "high"
    """Serious issue, may impact operations."""

    CRITICAL = "critical"
    """Critical issue, the process should stop."""


# ============================================================
# ERROR CLASSIFICATION
# ============================================================

class ErrorClassification(Enum):
    """Classification of error recoverability."""

    RECOVERABLE = "recoverable"
    """Error can be recovered from by the caller."""

    TRANSIENT = "transient"
    """Temporary error, a later attempt may succeed."""

    NON_RECOVERABLE = "non_recoverable"
    """Permanent error, requires intervention."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class StarterException(Exception):
    """
    Base exception for all service starter errors.

    All exceptions carry:
    - severity: for logging
    - context: for debugging
    - classification: for error handling decisions
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM
    default_classification: ErrorClassification = ErrorClassification.RECOVERABLE

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        classification: Optional[ErrorClassification] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.classification = classification or self.default_classification
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause is not None:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    @property
    def is_recoverable(self) -> bool:
        """Check if error is recoverable."""
        return self.classification in (
            ErrorClassification.RECOVERABLE,
            ErrorClassification.TRANSIENT,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "classification": self.classification.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        line = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        if ctx_str:
            line += f" | {ctx_str}"
        return line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(StarterException):
    """Error in configuration."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.NON_RECOVERABLE

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = str(actual_value)[:100]

        super().__init__(message, context=context, **kwargs)


# ============================================================
# PROTOCOL ERRORS
# ============================================================

class ProtocolError(StarterException):
    """
    Caller or programmer error.

    Raised synchronously when the orchestrator or a unit is used in a
    way its contract forbids. These are bugs, not runtime conditions.
    """

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.NON_RECOVERABLE


class StateTransitionError(ProtocolError):
    """Invalid status transition."""

    def __init__(
        self,
        message: str,
        from_state: Optional[str] = None,
        to_state: Optional[str] = None,
        subject: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if from_state:
            context["from_state"] = from_state
        if to_state:
            context["to_state"] = to_state
        if subject:
            context["subject"] = subject

        super().__init__(message, context=context, **kwargs)


class InvalidStateError(ProtocolError):
    """Operation requested while in a status that forbids it."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        status: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if operation:
            context["operation"] = operation
        if status:
            context["status"] = status

        super().__init__(message, context=context, **kwargs)


class DuplicateRegistrationError(ProtocolError):
    """A unit with the same name is already registered."""

    def __init__(self, unit_name: str):
        super().__init__(
            message=f"Unit already registered: {unit_name}",
            context={"unit": unit_name},
        )


class AlreadyRegisteredError(ProtocolError):
    """The unit is already owned by an orchestrator."""

    def __init__(self, unit_name: str, owner: str):
        super().__init__(
            message=f"Unit {unit_name} is already registered with {owner}",
            context={"unit": unit_name, "owner": owner},
        )


class ChannelMisuseError(ProtocolError):
    """The error-report channel was used outside the running status."""

    def __init__(self, unit_name: str, status: str):
        super().__init__(
            message=f"Unit {unit_name} reported an error while {status}",
            context={"unit": unit_name, "status": status},
        )


class OrchestratorExistsError(ProtocolError):
    """A second orchestrator was requested in the same process."""

    default_severity = Severity.CRITICAL


# ============================================================
# LIFECYCLE ERRORS
# ============================================================

class LifecycleError(StarterException):
    """Base class for lifecycle errors."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.RECOVERABLE


class StartupError(LifecycleError):
    """Startup failed or was interrupted."""

    def __init__(
        self,
        message: str,
        unit: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if unit:
            context["unit"] = unit

        super().__init__(message, context=context, **kwargs)


class HealthCheckError(LifecycleError):
    """A health probe could not be answered."""

    default_severity = Severity.MEDIUM
    default_classification = ErrorClassification.TRANSIENT


# ============================================================
# UNHANDLED ERRORS
# ============================================================

class UnhandledError(StarterException):
    """
    Synthesized for a process-level unhandled fault.

    Used when the fault source carries no exception object of its own.
    """

    default_severity = Severity.CRITICAL
    default_classification = ErrorClassification.NON_RECOVERABLE


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
]
