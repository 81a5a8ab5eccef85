"""
Service Starter Package - Lifecycle Orchestration.

============================================================
PACKAGE OVERVIEW
============================================================
Starts, supervises and stops the cooperating long-running units
of one process.

============================================================
CORE PRINCIPLES
============================================================
1. Units start in registration order, one at a time
2. A failed start rolls back everything already started
3. Units stop in reverse registration order; stop never aborts
4. Runtime faults go through the unit's own hook before escalating
5. The orchestrator stores policy flags, adapters apply them

============================================================
ARCHITECTURE
============================================================

    +-----------------------------------------------------+
    |                     Orchestrator                    |
    |-----------------------------------------------------|
    |  UnitRegistry   |  Ordered, unique unit names      |
    |  EventEmitter   |  started / stopped / error / ... |
    |  HealthReport   |  First failing unit wins         |
    +-----------------------------------------------------+
    |                       Adapters                      |
    |-----------------------------------------------------|
    |  SignalAdapter  |  SIGTERM / SIGINT -> stop        |
    |  Unhandled      |  Unhandled faults -> stop        |
    |  ErrorPolicy    |  stop_on_error                   |
    |  Health probes  |  IPC pipe, HTTP socket/port      |
    +-----------------------------------------------------+

============================================================
QUICK START
============================================================
Command line usage::

    service-starter --unit myapp.db:Database --unit myapp.web:WebServer

Programmatic usage::

    import asyncio
    from service_starter import OrchestratorFactory, Unit, run

    class Database(Unit):
        async def on_start(self):
            self.pool = await connect()

        async def on_stop(self):
            await self.pool.close()

    async def main():
        orchestrator = OrchestratorFactory().create()
        orchestrator.register(Database())
        return await run(orchestrator)

    raise SystemExit(asyncio.run(main()))

============================================================
EXPORTS
============================================================
"""

# ============================================================
# Models
# ============================================================
from service_starter.models import (
    ExitCode,
    ExceptionRecord,
    HealthState,
    HealthReport,
    OrchestratorConfig,
)

# ============================================================
# Units and events
# ============================================================
from service_starter.unit import Unit
from service_starter.registry import UnitRegistry
from service_starter.events import Event, EventEmitter

# ============================================================
# Core
# ============================================================
from service_starter.core import (
    Orchestrator,
    OrchestratorFactory,
)
from service_starter.log import JsonFormatter, setup_logging
from service_starter.runner import run


__version__ = "1.0.0"

__all__ = [
    # Models
    "ExitCode",
    "ExceptionRecord",
    "HealthState",
    "HealthReport",
    "OrchestratorConfig",
    # Units and events
    "Unit",
    "UnitRegistry",
    "Event",
    "EventEmitter",
    # Core
    "Orchestrator",
    "OrchestratorFactory",
    "JsonFormatter",
    "setup_logging",
    "run",
]
