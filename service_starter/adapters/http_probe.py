"""
Adapters - HTTP Health Probe.

============================================================
RESPONSIBILITY
============================================================
Serves the aggregated health report over HTTP for container
health checks.

- Listens on a unix socket (default) or a TCP host/port
- GET /health -> 200 when healthy, 503 otherwise
- Body is the health probe payload as JSON
- A stale socket file is removed before binding

============================================================
USAGE
============================================================
    curl --unix-socket /tmp/service_starter_health_checking.sock \
        http://localhost/health

============================================================
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import web

from starter_core.exceptions import HealthCheckError

from ..core import Orchestrator
from ..models import DEFAULT_HEALTH_SOCKET


logger = logging.getLogger(__name__)


def json_response(data: Any, status: int = 200) -> web.Response:
    """Create JSON response."""
    return web.Response(
        text=json.dumps(data),
        status=status,
        content_type="application/json",
    )


# ============================================================
# SERVER
# ============================================================

class HttpHealthProbe:
    """aiohttp server exposing Orchestrator.health_check()."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        socket_path: Optional[str] = DEFAULT_HEALTH_SOCKET,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        """
        Args:
            orchestrator: Orchestrator to probe
            socket_path: Unix socket path, used when no port is given
            host: TCP host (default 127.0.0.1)
            port: TCP port
        """
        self._orchestrator = orchestrator
        self._socket_path = socket_path
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None

    @classmethod
    def from_config(cls, orchestrator: Orchestrator) -> "HttpHealthProbe":
        config = orchestrator.config
        return cls(
            orchestrator,
            socket_path=config.health_probe_socket,
            host=config.health_probe_host,
            port=config.health_probe_port,
        )

    @property
    def is_serving(self) -> bool:
        return self._runner is not None

    @property
    def address(self) -> str:
        if self._port is not None:
            return f"http://{self._host or '127.0.0.1'}:{self._port}"
        return f"unix:{self._socket_path}"

    def create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_get("/", self.health)
        app.router.add_get("/health", self.health)
        return app

    async def health(self, request: web.Request) -> web.Response:
        """GET /health"""
        report = await self._orchestrator.health_check()
        return json_response(report.to_dict(), status=200 if report.healthy else 503)

    async def start(self) -> None:
        """Bind and start serving."""
        if self._runner is not None:
            return

        runner = web.AppRunner(self.create_app(), access_log=None)
        await runner.setup()

        if self._port is not None:
            site = web.TCPSite(runner, self._host or "127.0.0.1", self._port)
        else:
            if not self._socket_path:
                await runner.cleanup()
                raise HealthCheckError("HTTP health probe needs a socket path or a port")
            if os.path.exists(self._socket_path):
                os.remove(self._socket_path)
            site = web.UnixSite(runner, self._socket_path)

        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            raise HealthCheckError(
                message=f"HTTP health probe could not bind {self.address}",
                cause=e,
            )

        self._runner = runner
        logger.info(f"Health probe listening on {self.address}")

    async def stop(self) -> None:
        """Stop serving and remove the socket file."""
        if self._runner is None:
            return

        await self._runner.cleanup()
        self._runner = None

        if self._port is None and self._socket_path and os.path.exists(self._socket_path):
            os.remove(self._socket_path)
        logger.info("Health probe stopped")


# ============================================================
# CLIENT
# ============================================================

async def request_health(
    socket_path: Optional[str] = DEFAULT_HEALTH_SOCKET,
    host: Optional[str] = None,
    port: Optional[int] = None,
    timeout_seconds: float = 5.0,
) -> Dict[str, Any]:
    """
    Query a running health probe.

    Returns:
        The probe payload

    Raises:
        HealthCheckError: If the probe cannot be reached
    """
    timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    if port is not None:
        connector = None
        url = f"http://{host or '127.0.0.1'}:{port}/health"
    else:
        connector = aiohttp.UnixConnector(path=socket_path)
        url = "http://localhost/health"

    try:
        async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
            async with session.get(url) as response:
                return await response.json(content_type=None)
    except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
        raise HealthCheckError(
            message=f"Health probe unreachable: {e}",
            context={"url": url, "socket": socket_path},
            cause=e,
        )


__all__ = [
    "HttpHealthProbe",
    "json_response",
    "request_health",
]
