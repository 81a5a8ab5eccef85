"""
Adapters Package.

Thin collaborators composed with one orchestrator. Each one only
uses register / start / stop / health_check and the events.

- SignalAdapter: SIGTERM / SIGINT handling
- UnhandledFaultAdapter: unhandled exceptions -> UNHANDLED
- ErrorPolicyAdapter: stop_on_error
- IpcHealthProbe: health over a parent process pipe
- HttpHealthProbe: health over HTTP (unix socket or TCP)
"""

from .signals import SignalAdapter
from .unhandled import UnhandledFaultAdapter
from .policy import ErrorPolicyAdapter
from .ipc_probe import HEALTH_CHECK_MESSAGE, IpcHealthProbe
from .http_probe import HttpHealthProbe, request_health

__all__ = [
    "SignalAdapter",
    "UnhandledFaultAdapter",
    "ErrorPolicyAdapter",
    "HEALTH_CHECK_MESSAGE",
    "IpcHealthProbe",
    "HttpHealthProbe",
    "request_health",
]
