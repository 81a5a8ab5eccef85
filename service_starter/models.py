"""
Service Starter - Models.

============================================================
RESPONSIBILITY
============================================================
Defines data models for the service starter.

- Exit codes for the "stopped" event
- Exception records returned by start and stop passes
- Health reports and their probe payload
- Orchestrator configuration

============================================================
"""

import os
from enum import Enum, IntEnum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from starter_core.status import RunningStatus

if TYPE_CHECKING:
    from .unit import Unit


DEFAULT_HEALTH_SOCKET = "/tmp/service_starter_health_checking.sock"


# ============================================================
# EXIT CODES
# ============================================================

class ExitCode(IntEnum):
    """Exit codes carried by the "stopped" event."""

    NORMAL = 0
    """Normal shutdown."""

    SYSTEM_ERROR = 1
    """Process-level fault, e.g. an unhandled exception."""

    UNIT_ERROR = 2
    """A unit caused the stop: start rollback, stop failure or escalated error."""


# ============================================================
# EXCEPTION RECORD
# ============================================================

@dataclass
class ExceptionRecord:
    """A failure observed during a lifecycle pass."""

    error: BaseException
    """The failure."""

    unit: Optional["Unit"] = None
    """Unit that produced it, if any."""

    @property
    def unit_name(self) -> Optional[str]:
        """Get the unit name."""
        return self.unit.name if self.unit is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "unit": self.unit_name,
            "unit_status": self.unit.status.value if self.unit is not None else None,
            "error_type": type(self.error).__name__,
            "error": str(self.error),
        }

    def __str__(self) -> str:
        prefix = f"[{self.unit_name}] " if self.unit is not None else ""
        return f"{prefix}{type(self.error).__name__}: {self.error}"


# ============================================================
# HEALTH REPORT
# ============================================================

class HealthState(Enum):
    """Outcome of an aggregated health check."""

    HEALTHY = "healthy"
    """Every running unit passed."""

    UNHEALTHY = "unhealthy"
    """A unit check failed."""

    UNAVAILABLE = "unavailable"
    """Not running, so no unit was checked. Reported as healthy."""


@dataclass
class HealthReport:
    """Result of Orchestrator.health_check()."""

    state: HealthState
    manager_status: RunningStatus
    unit: Optional["Unit"] = None
    error: Optional[BaseException] = None

    @property
    def healthy(self) -> bool:
        """Check that no unit failed. Unavailable counts as healthy."""
        return self.state != HealthState.UNHEALTHY

    @property
    def description(self) -> Optional[str]:
        """Human readable detail, None when every unit passed."""
        if self.state == HealthState.UNHEALTHY and self.error is not None:
            return f"{type(self.error).__name__}: {self.error}"
        if self.state == HealthState.UNAVAILABLE:
            return f"orchestrator is {self.manager_status.value}"
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the health probe payload."""
        payload: Dict[str, Any] = {
            "healthy": self.healthy,
            "managerStatus": self.manager_status.value,
        }
        if self.unit is not None:
            payload["unitName"] = self.unit.name
        description = self.description
        if description is not None:
            payload["description"] = description
        return payload


# ============================================================
# ORCHESTRATOR CONFIGURATION
# ============================================================

def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class OrchestratorConfig:
    """
    Configuration for the orchestrator and its adapters.

    The orchestrator stores these flags but never interprets them;
    adapters read them when they are wired.
    """

    name: Optional[str] = None
    """Orchestrator name (default: class name)."""

    # Policy flags
    stop_on_error: bool = False
    """Stop with UNIT_ERROR when a unit error escalates."""

    stop_on_unhandled_exception: bool = True
    """Stop with SYSTEM_ERROR on a process-level unhandled fault."""

    stop_on_sigterm: bool = True
    """Stop on SIGTERM."""

    stop_on_sigint: bool = True
    """Stop on SIGINT."""

    exit_after_stopped: bool = True
    """Exit the process with the stop exit code once stopped."""

    force_exit_window_seconds: float = 3.0
    """Second signal within this window while stopping forces exit."""

    # Health probes
    health_probe_enabled: bool = True
    """Serve the HTTP health probe."""

    health_probe_socket: Optional[str] = DEFAULT_HEALTH_SOCKET
    """Unix socket path for the HTTP probe."""

    health_probe_host: Optional[str] = None
    """TCP host for the HTTP probe (overrides the socket when set with a port)."""

    health_probe_port: Optional[int] = None
    """TCP port for the HTTP probe."""

    ipc_probe_enabled: bool = True
    """Answer health requests from a parent process pipe."""

    # Logging
    log_level: str = "INFO"
    """Logging level."""

    log_format: str = "text"
    """Logging format (json or text)."""

    @property
    def uses_tcp_probe(self) -> bool:
        """Check if the HTTP probe binds a TCP port."""
        return self.health_probe_port is not None

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Load configuration from environment variables."""
        port = os.getenv("SERVICE_STARTER_HEALTH_PORT")
        return cls(
            name=os.getenv("SERVICE_STARTER_NAME"),
            stop_on_error=_env_bool("SERVICE_STARTER_STOP_ON_ERROR", False),
            stop_on_unhandled_exception=_env_bool("SERVICE_STARTER_STOP_ON_UNHANDLED", True),
            stop_on_sigterm=_env_bool("SERVICE_STARTER_STOP_ON_SIGTERM", True),
            stop_on_sigint=_env_bool("SERVICE_STARTER_STOP_ON_SIGINT", True),
            exit_after_stopped=_env_bool("SERVICE_STARTER_EXIT_AFTER_STOPPED", True),
            force_exit_window_seconds=float(os.getenv("SERVICE_STARTER_FORCE_EXIT_WINDOW", "3.0")),
            health_probe_enabled=_env_bool("SERVICE_STARTER_HEALTH_PROBE", True),
            health_probe_socket=os.getenv("SERVICE_STARTER_HEALTH_SOCKET", DEFAULT_HEALTH_SOCKET),
            health_probe_host=os.getenv("SERVICE_STARTER_HEALTH_HOST"),
            health_probe_port=int(port) if port else None,
            ipc_probe_enabled=_env_bool("SERVICE_STARTER_IPC_PROBE", True),
            log_level=os.getenv("SERVICE_STARTER_LOG_LEVEL", "INFO"),
            log_format=os.getenv("SERVICE_STARTER_LOG_FORMAT", "text"),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.force_exit_window_seconds <= 0:
            errors.append("force_exit_window_seconds must be positive")

        if self.health_probe_port is not None and not 0 < self.health_probe_port < 65536:
            errors.append("health_probe_port must be between 1 and 65535")

        if self.health_probe_enabled and not self.uses_tcp_probe and not self.health_probe_socket:
            errors.append("health_probe_socket or health_probe_port required when the health probe is enabled")

        if self.log_format not in ("json", "text"):
            errors.append("log_format must be 'json' or 'text'")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"unknown log_level: {self.log_level}")

        return errors


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "DEFAULT_HEALTH_SOCKET",
    "ExitCode",
    "ExceptionRecord",
    "HealthState",
    "HealthReport",
    "OrchestratorConfig",
]
