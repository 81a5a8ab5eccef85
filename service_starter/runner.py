"""
Service Starter - Runner.

============================================================
RESPONSIBILITY
============================================================
Composes one orchestrator with the adapters its configuration
enables, starts it, and waits until the process should exit.

- Installs signal, unhandled-fault and error-policy adapters
- Serves the HTTP health probe while the process lives
- Attaches the IPC probe when a parent pipe is given
- Returns the exit code of the stop that ends the run

============================================================
"""

import asyncio
import logging
from multiprocessing.connection import Connection
from typing import Optional

from .adapters import (
    ErrorPolicyAdapter,
    HttpHealthProbe,
    IpcHealthProbe,
    SignalAdapter,
    UnhandledFaultAdapter,
)
from .core import Orchestrator
from .events import Event


logger = logging.getLogger(__name__)


async def run(
    orchestrator: Orchestrator,
    ipc_connection: Optional[Connection] = None,
) -> int:
    """
    Run an orchestrator until it should exit.

    With ``exit_after_stopped`` the run ends at the first "stopped"
    event. Without it the run ends only when a signal arrives while
    everything is already stopped.

    Args:
        orchestrator: Orchestrator with its units registered
        ipc_connection: Pipe to a parent process for health requests

    Returns:
        Exit code
    """
    loop = asyncio.get_running_loop()
    config = orchestrator.config
    finished: asyncio.Future = loop.create_future()

    def finish(code: int) -> None:
        if not finished.done():
            finished.set_result(int(code))

    def on_stopped(code: int) -> None:
        if config.exit_after_stopped:
            finish(code)

    orchestrator.on(Event.STOPPED, on_stopped)

    signals = SignalAdapter(orchestrator, exit_func=finish)
    unhandled = UnhandledFaultAdapter(orchestrator, exit_func=finish)
    policy = ErrorPolicyAdapter(orchestrator, exit_func=finish)
    probe = HttpHealthProbe.from_config(orchestrator) if config.health_probe_enabled else None
    ipc = None
    if ipc_connection is not None and config.ipc_probe_enabled:
        ipc = IpcHealthProbe(orchestrator, ipc_connection)

    signals.install(loop)
    unhandled.install(loop)
    policy.install()

    try:
        if probe is not None:
            await probe.start()
        if ipc is not None:
            ipc.attach(loop)

        records = await orchestrator.start()
        for record in records:
            logger.error(f"Startup failure: {record}")

        return await finished
    finally:
        if ipc is not None:
            ipc.detach()
        if probe is not None:
            await probe.stop()
        policy.uninstall()
        unhandled.uninstall()
        signals.uninstall()
        orchestrator.off(Event.STOPPED, on_stopped)


__all__ = [
    "run",
]
