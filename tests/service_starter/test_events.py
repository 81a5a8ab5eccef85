"""
Tests for EventEmitter.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from service_starter import Event, EventEmitter


class TestEventEmitter:
    """Tests for listener registration and delivery."""

    @pytest.mark.asyncio
    async def test_listeners_called_in_order(self):
        emitter = EventEmitter()
        calls = []
        emitter.on(Event.STOPPED, lambda code: calls.append(("first", code)))
        emitter.on(Event.STOPPED, lambda code: calls.append(("second", code)))

        count = await emitter.emit(Event.STOPPED, 0)

        assert count == 2
        assert calls == [("first", 0), ("second", 0)]

    @pytest.mark.asyncio
    async def test_string_and_enum_names_match(self):
        emitter = EventEmitter()
        listener = MagicMock()
        emitter.on("started", listener)

        await emitter.emit(Event.STARTED)

        listener.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_coroutine_listener_awaited(self):
        emitter = EventEmitter()
        listener = AsyncMock()
        emitter.on(Event.ERROR, listener)
        error = RuntimeError("x")

        await emitter.emit(Event.ERROR, error, None)

        listener.assert_awaited_once_with(error, None)

    @pytest.mark.asyncio
    async def test_once_listener_removed(self):
        emitter = EventEmitter()
        listener = MagicMock()
        emitter.once(Event.STARTED, listener)

        await emitter.emit(Event.STARTED)
        await emitter.emit(Event.STARTED)

        listener.assert_called_once()
        assert emitter.listener_count(Event.STARTED) == 0

    @pytest.mark.asyncio
    async def test_off(self):
        emitter = EventEmitter()
        listener = MagicMock()
        emitter.on(Event.STARTED, listener)
        emitter.off(Event.STARTED, listener)

        count = await emitter.emit(Event.STARTED)

        assert count == 0
        listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self):
        emitter = EventEmitter()
        after = MagicMock()
        emitter.on(Event.UNHANDLED, MagicMock(side_effect=RuntimeError("listener bug")))
        emitter.on(Event.UNHANDLED, after)

        await emitter.emit(Event.UNHANDLED, ValueError("fault"))

        after.assert_called_once()

    @pytest.mark.asyncio
    async def test_emit_without_listeners(self):
        assert await EventEmitter().emit(Event.UNHEALTHY, None, None) == 0

    def test_on_returns_listener(self):
        emitter = EventEmitter()

        def handler():
            pass

        assert emitter.on(Event.STARTED, handler) is handler
        assert emitter.once(Event.STOPPED, handler) is handler
        assert emitter.listener_count(Event.STARTED) == 1
        assert emitter.listener_count(Event.STOPPED) == 1
