"""
Service Starter - Events.

============================================================
RESPONSIBILITY
============================================================
Minimal event emitter for orchestrator notifications.

- Named events with positional payloads
- Plain callables and coroutine functions as listeners
- One-shot listeners
- A failing listener never blocks delivery to the others

============================================================
EVENTS
============================================================
- STARTED   : ()                  start() completed with no failure
- STOPPED   : (exit_code)         a stop pass completed
- ERROR     : (error, unit)       an escalated runtime fault
- UNHEALTHY : (error, unit)       health_check() found a failing unit
- UNHANDLED : (error,)            a process-level unhandled fault

============================================================
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Tuple, Union


# ============================================================
# EVENT NAMES
# ============================================================

class Event(Enum):
    """Events raised by the orchestrator."""

    STARTED = "started"
    STOPPED = "stopped"
    ERROR = "error"
    UNHEALTHY = "unhealthy"
    UNHANDLED = "unhandled"


Listener = Callable[..., Any]
EventName = Union[Event, str]


def _key(event: EventName) -> str:
    return event.value if isinstance(event, Event) else str(event)


# ============================================================
# EVENT EMITTER
# ============================================================

class EventEmitter:
    """
    Ordered listener registry with async delivery.

    Listeners are invoked in registration order. Coroutine results are
    awaited before the next listener runs.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Tuple[Listener, bool]]] = {}
        self._logger = logging.getLogger(__name__)

    def on(self, event: EventName, listener: Listener) -> Listener:
        """Register a listener. Returns it so it can be used as a decorator."""
        self._listeners.setdefault(_key(event), []).append((listener, False))
        return listener

    def once(self, event: EventName, listener: Listener) -> Listener:
        """Register a listener that is removed after its first call."""
        self._listeners.setdefault(_key(event), []).append((listener, True))
        return listener

    def off(self, event: EventName, listener: Listener) -> None:
        """Unregister a listener."""
        key = _key(event)
        self._listeners[key] = [
            entry for entry in self._listeners.get(key, []) if entry[0] is not listener
        ]

    def listener_count(self, event: EventName) -> int:
        """Get number of listeners for an event."""
        return len(self._listeners.get(_key(event), []))

    async def emit(self, event: EventName, *args: Any) -> int:
        """
        Deliver an event to every listener.

        Args:
            event: Event name
            *args: Event payload

        Returns:
            Number of listeners invoked
        """
        key = _key(event)
        entries = list(self._listeners.get(key, []))

        # Drop one-shot listeners before delivery so re-entrant emits skip them
        if any(once for _, once in entries):
            self._listeners[key] = [e for e in self._listeners.get(key, []) if not e[1]]

        for listener, _ in entries:
            try:
                result = listener(*args)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                self._logger.error(
                    f"Listener error for event '{key}': {e}",
                    exc_info=True,
                )

        return len(entries)


__all__ = [
    "Event",
    "EventEmitter",
    "Listener",
]
