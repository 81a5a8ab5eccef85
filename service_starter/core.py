"""
Service Starter - Core.

============================================================
RESPONSIBILITY
============================================================
The orchestrator: owns the unit registry and drives lifecycle.

- Registers units in a fixed order
- Starts units in registration order, rolling back on failure
- Stops units in reverse registration order, never aborting
- Aggregates unit health on demand
- Escalates unit runtime faults as orchestrator events

============================================================
ARCHITECTURAL POSITION
============================================================
- Has NO knowledge of signals, processes or transports
- Stores policy flags but never interprets them
- Adapters observe its events and call start/stop/health_check

============================================================
CONCURRENCY
============================================================
Everything runs on one event loop. The only suspension points are
the awaited unit hooks. start() and stop() check their preconditions
synchronously on entry; there is no lock and no timeout, so a hook
that never returns stalls its pass.

============================================================
"""

import logging
from typing import Any, Dict, List, Optional, Type

from starter_core.exceptions import (
    ConfigurationError,
    InvalidStateError,
    OrchestratorExistsError,
    StartupError,
)
from starter_core.status import RunningStatus, check_transition

from .events import Event, EventEmitter, EventName, Listener
from .models import (
    ExceptionRecord,
    ExitCode,
    HealthReport,
    HealthState,
    OrchestratorConfig,
)
from .registry import UnitRegistry
from .unit import Unit


# ============================================================
# ORCHESTRATOR
# ============================================================

class Orchestrator:
    """
    Lifecycle orchestrator for the units of one process.

    Create it through ``OrchestratorFactory`` in application code so
    that only one instance exists per process. Direct construction is
    meant for tests and embedding.
    """

    def __init__(self, config: Optional[OrchestratorConfig] = None):
        """
        Initialize orchestrator.

        Args:
            config: Orchestrator configuration (default: all defaults)

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self._config = config or OrchestratorConfig()

        errors = self._config.validate()
        if errors:
            raise ConfigurationError(
                message=f"Invalid configuration: {', '.join(errors)}",
            )

        self._registry = UnitRegistry()
        self._events = EventEmitter()
        self._status = RunningStatus.STOPPED
        self._pass_id = 0
        self._last_exit_code: Optional[int] = None
        self._logger = logging.getLogger(__name__)

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def name(self) -> str:
        """Orchestrator name (default: class name)."""
        return self._config.name or type(self).__name__

    @property
    def config(self) -> OrchestratorConfig:
        """Get configuration."""
        return self._config

    @property
    def status(self) -> RunningStatus:
        """Get overall status."""
        return self._status

    @property
    def is_running(self) -> bool:
        """Check if every unit started."""
        return self._status == RunningStatus.RUNNING

    @property
    def units(self) -> List[Unit]:
        """Get registered units in startup order."""
        return self._registry.startup_order()

    @property
    def last_exit_code(self) -> Optional[int]:
        """Exit code of the last completed stop pass."""
        return self._last_exit_code

    # --------------------------------------------------------
    # Events
    # --------------------------------------------------------

    def on(self, event: EventName, listener: Listener) -> Listener:
        """Register an event listener."""
        return self._events.on(event, listener)

    def once(self, event: EventName, listener: Listener) -> Listener:
        """Register a one-shot event listener."""
        return self._events.once(event, listener)

    def off(self, event: EventName, listener: Listener) -> None:
        """Unregister an event listener."""
        self._events.off(event, listener)

    async def emit(self, event: EventName, *args: Any) -> int:
        """Raise an event. Used by adapters for UNHANDLED."""
        return await self._events.emit(event, *args)

    # --------------------------------------------------------
    # Registration
    # --------------------------------------------------------

    def register(self, unit: Unit) -> Unit:
        """
        Register a unit. Registration order is startup order.

        Args:
            unit: Unit instance

        Returns:
            The registered unit

        Raises:
            InvalidStateError: If the orchestrator is not stopped
            DuplicateRegistrationError: If the name is taken
            AlreadyRegisteredError: If the unit has an owner
        """
        if self._status != RunningStatus.STOPPED:
            raise InvalidStateError(
                message=f"Cannot register {unit.name} while {self.name} is {self._status.value}",
                operation="register",
                status=self._status.value,
            )

        self._registry.check_available(unit.name)
        unit._bind(self, self._handle_unit_error)
        self._registry.add(unit)

        self._logger.info(f"Registered unit [{unit.name}] ({type(unit).__name__})")
        return unit

    def lookup(self, name: str) -> Optional[Unit]:
        """Find a registered unit by name."""
        return self._registry.get(name)

    # --------------------------------------------------------
    # Start
    # --------------------------------------------------------

    async def start(self) -> List[ExceptionRecord]:
        """
        Start every unit in registration order.

        Stops at the first failure and rolls back everything that was
        started, in reverse order.

        Returns:
            Every failure recorded, empty on success

        Raises:
            InvalidStateError: If the orchestrator is not stopped
        """
        if self._status != RunningStatus.STOPPED:
            raise InvalidStateError(
                message=f"{self.name} cannot start while {self._status.value}",
                operation="start",
                status=self._status.value,
            )

        self._logger.info(f"=== {self.name} STARTUP SEQUENCE ===")
        self._set_status(RunningStatus.STARTING)
        self._pass_id += 1
        pass_id = self._pass_id

        records: List[ExceptionRecord] = []

        for unit in self._registry.startup_order():
            record = await self._start_unit(unit)

            if pass_id != self._pass_id:
                # stop() ran while this unit's hook was suspended
                if record is not None:
                    records.append(record)
                interrupted = StartupError(
                    message="start interrupted by stop",
                    unit=unit.name,
                )
                self._logger.warning(f"{self.name} startup interrupted at unit [{unit.name}]")
                records.append(ExceptionRecord(interrupted, unit))
                return records

            if record is not None:
                records.append(record)
                break

        if records:
            self._logger.error(
                f"{self.name} startup failed, rolling back: "
                f"{'; '.join(str(r) for r in records)}"
            )
            records.extend(await self._shutdown(ExitCode.UNIT_ERROR))
            return records

        self._set_status(RunningStatus.RUNNING)
        self._logger.info(f"=== {self.name} STARTUP COMPLETE ({len(self._registry)} units) ===")
        await self._events.emit(Event.STARTED)
        return records

    async def _start_unit(self, unit: Unit) -> Optional[ExceptionRecord]:
        """Start one unit. Returns a record on failure."""
        if unit.status != RunningStatus.STOPPED:
            error = InvalidStateError(
                message=f"Unit {unit.name} is {unit.status.value}, expected stopped",
                operation="start",
                status=unit.status.value,
            )
            self._logger.error(error.to_log_format())
            return ExceptionRecord(error, unit)

        unit._transition(RunningStatus.STARTING)
        self._logger.info(f"Starting unit: {unit.name}")

        try:
            await unit.on_start()
        except Exception as e:
            self._logger.error(f"Unit start failed: {unit.name}: {e}", exc_info=True)
            return ExceptionRecord(e, unit)

        # A concurrent stop pass owns the unit now
        if unit.status == RunningStatus.STARTING:
            unit._transition(RunningStatus.RUNNING)
            self._logger.info(f"Started unit: {unit.name}")

        return None

    # --------------------------------------------------------
    # Stop
    # --------------------------------------------------------

    async def stop(self, exit_code: Optional[int] = None) -> List[ExceptionRecord]:
        """
        Stop every started unit in reverse registration order.

        Calling it while stopping or stopped does nothing and returns a
        single diagnostic record.

        Args:
            exit_code: Exit code for the "stopped" event. Defaults to
                UNIT_ERROR if any unit failed to stop, else NORMAL.

        Returns:
            Every failure recorded
        """
        if not self._status.is_active:
            error = InvalidStateError(
                message=f"{self.name} is already {self._status.value}",
                operation="stop",
                status=self._status.value,
            )
            self._logger.warning(error.to_log_format())
            return [ExceptionRecord(error)]

        self._logger.info(f"=== {self.name} SHUTDOWN SEQUENCE ===")
        return await self._shutdown(exit_code)

    async def _shutdown(self, exit_code: Optional[int]) -> List[ExceptionRecord]:
        """Reverse-order stop pass shared by stop() and start rollback."""
        self._pass_id += 1
        self._set_status(RunningStatus.STOPPING)

        records: List[ExceptionRecord] = []
        for unit in self._registry.shutdown_order():
            if not unit.status.is_active:
                continue
            record = await self._stop_unit(unit)
            if record is not None:
                records.append(record)

        self._set_status(RunningStatus.STOPPED)

        if exit_code is None:
            exit_code = ExitCode.UNIT_ERROR if records else ExitCode.NORMAL
        self._last_exit_code = exit_code

        self._logger.info(
            f"=== {self.name} SHUTDOWN COMPLETE "
            f"(exit_code={int(exit_code)}, failures={len(records)}) ==="
        )
        await self._events.emit(Event.STOPPED, exit_code)
        return records

    async def _stop_unit(self, unit: Unit) -> Optional[ExceptionRecord]:
        """Stop one unit. Always ends stopped; returns a record on failure."""
        unit._transition(RunningStatus.STOPPING)
        self._logger.info(f"Stopping unit: {unit.name}")

        record = None
        try:
            await unit.on_stop()
        except Exception as e:
            self._logger.warning(f"Unit stop failed: {unit.name}: {e}", exc_info=True)
            record = ExceptionRecord(e, unit)

        unit._transition(RunningStatus.STOPPED)
        if record is None:
            self._logger.info(f"Stopped unit: {unit.name}")
        return record

    # --------------------------------------------------------
    # Health
    # --------------------------------------------------------

    async def health_check(self) -> HealthReport:
        """
        Check unit health in registration order.

        The first failing unit ends the scan. Nothing is checked unless
        the orchestrator is running; starting, stopping and stopped
        report UNAVAILABLE, which probes serve as healthy.
        """
        if self._status != RunningStatus.RUNNING:
            return HealthReport(HealthState.UNAVAILABLE, self._status)

        for unit in self._registry.startup_order():
            if unit.status != RunningStatus.RUNNING:
                continue
            try:
                await unit.on_health_check()
            except Exception as e:
                self._logger.warning(f"Unit unhealthy: {unit.name}: {e}")
                await self._events.emit(Event.UNHEALTHY, e, unit)
                return HealthReport(HealthState.UNHEALTHY, self._status, unit, e)

        return HealthReport(HealthState.HEALTHY, self._status)

    # --------------------------------------------------------
    # Error escalation
    # --------------------------------------------------------

    async def _handle_unit_error(self, unit: Unit, error: BaseException) -> None:
        """Listener behind every unit's error-report channel."""
        try:
            result = await unit.on_error(error)
        except Exception as hook_error:
            self._logger.error(
                f"Error hook of unit {unit.name} failed: {hook_error}",
                exc_info=True,
            )
            result = error

        if result is False:
            self._logger.debug(f"Error suppressed by unit {unit.name}: {error}")
            return

        escalated = result if isinstance(result, BaseException) else error
        self._logger.error(
            f"Unit error: {unit.name}: {escalated}",
            exc_info=(type(escalated), escalated, escalated.__traceback__),
        )
        await self._events.emit(Event.ERROR, escalated, unit)

    # --------------------------------------------------------
    # Status
    # --------------------------------------------------------

    def _set_status(self, target: RunningStatus) -> None:
        self._status = check_transition(self._status, target, subject=self.name)

    def get_status(self) -> Dict[str, Any]:
        """Get orchestrator status."""
        return {
            "name": self.name,
            "status": self._status.value,
            "last_exit_code": self._last_exit_code,
            "units": self._registry.get_status_summary(),
        }


# ============================================================
# ORCHESTRATOR FACTORY
# ============================================================

class OrchestratorFactory:
    """
    Creates the one orchestrator of a process.

    The entry point owns a factory; a second ``create()`` on it is a
    hard error.
    """

    def __init__(self, orchestrator_class: Type[Orchestrator] = Orchestrator):
        self._orchestrator_class = orchestrator_class
        self._instance: Optional[Orchestrator] = None

    @property
    def instance(self) -> Optional[Orchestrator]:
        """The created orchestrator, if any."""
        return self._instance

    def create(self, config: Optional[OrchestratorConfig] = None) -> Orchestrator:
        """
        Create the orchestrator.

        Raises:
            OrchestratorExistsError: If one was already created
        """
        if self._instance is not None:
            raise OrchestratorExistsError(
                message=f"Only one orchestrator is allowed per process, {self._instance.name} exists",
                context={"existing": self._instance.name},
            )
        self._instance = self._orchestrator_class(config=config)
        return self._instance


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "Orchestrator",
    "OrchestratorFactory",
]
