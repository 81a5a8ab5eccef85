"""
Adapters - IPC Health Probe.

============================================================
RESPONSIBILITY
============================================================
Answers health requests from a parent process over a
multiprocessing pipe.

- Request:  the string "__ss__healthCheck"
- Response: {"type": "healthCheck", "healthy": bool,
             "managerStatus": str, "unitName"?: str,
             "description"?: str}
- Other messages are ignored
- The probe detaches when the parent closes its end

============================================================
"""

import asyncio
import logging
from multiprocessing.connection import Connection
from typing import Any, Dict, Optional, Set

from ..core import Orchestrator


HEALTH_CHECK_MESSAGE = "__ss__healthCheck"
HEALTH_CHECK_RESPONSE_TYPE = "healthCheck"


class IpcHealthProbe:
    """Health probe over a multiprocessing Connection."""

    def __init__(self, orchestrator: Orchestrator, connection: Connection):
        self._orchestrator = orchestrator
        self._connection = connection
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._attached = False
        self._tasks: Set[asyncio.Task] = set()
        self._logger = logging.getLogger(__name__)

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Start watching the pipe for requests."""
        self._loop = loop or asyncio.get_running_loop()
        self._loop.add_reader(self._connection.fileno(), self._on_readable)
        self._attached = True
        self._logger.debug("IPC health probe attached")

    def detach(self) -> None:
        """Stop watching the pipe."""
        if not self._attached:
            return
        self._attached = False
        if self._loop is not None and not self._loop.is_closed():
            self._loop.remove_reader(self._connection.fileno())
        self._logger.debug("IPC health probe detached")

    def _on_readable(self) -> None:
        try:
            message = self._connection.recv()
        except (EOFError, OSError):
            self._logger.info("IPC health probe: parent disconnected")
            self.detach()
            return

        if message != HEALTH_CHECK_MESSAGE:
            return

        task = self._loop.create_task(self.respond())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def respond(self) -> Dict[str, Any]:
        """Run a health check and send the report to the parent."""
        report = await self._orchestrator.health_check()
        payload = {"type": HEALTH_CHECK_RESPONSE_TYPE, **report.to_dict()}

        try:
            self._connection.send(payload)
        except (BrokenPipeError, EOFError, OSError) as e:
            self._logger.warning(f"IPC health probe could not reply: {e}")
            self.detach()

        return payload


__all__ = [
    "HEALTH_CHECK_MESSAGE",
    "HEALTH_CHECK_RESPONSE_TYPE",
    "IpcHealthProbe",
]
