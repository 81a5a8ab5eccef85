"""
Shared fixtures for the service starter tests.
"""

import asyncio
from typing import Any, List, Optional, Tuple

import pytest

from service_starter import Orchestrator, OrchestratorConfig, Unit


# ============================================================
# TEST UNITS
# ============================================================

class RecordingUnit(Unit):
    """Unit that appends every hook call to a shared journal."""

    def __init__(
        self,
        name: str,
        journal: List[Tuple[str, str]],
        fail_start: Optional[BaseException] = None,
        fail_stop: Optional[BaseException] = None,
        fail_health: Optional[BaseException] = None,
        error_result: Any = None,
        fail_hook: Optional[BaseException] = None,
        start_gate: Optional[asyncio.Event] = None,
    ):
        super().__init__(name)
        self.journal = journal
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.fail_health = fail_health
        self.error_result = error_result
        self.fail_hook = fail_hook
        self.start_gate = start_gate
        self.errors_seen: List[BaseException] = []

    async def on_start(self) -> None:
        self.journal.append(("start", self.name))
        if self.start_gate is not None:
            await self.start_gate.wait()
        if self.fail_start is not None:
            raise self.fail_start

    async def on_stop(self) -> None:
        self.journal.append(("stop", self.name))
        if self.fail_stop is not None:
            raise self.fail_stop

    async def on_health_check(self) -> None:
        self.journal.append(("health", self.name))
        if self.fail_health is not None:
            raise self.fail_health

    async def on_error(self, error: BaseException) -> Any:
        self.errors_seen.append(error)
        if self.fail_hook is not None:
            raise self.fail_hook
        return self.error_result


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def journal() -> List[Tuple[str, str]]:
    """Hook call journal shared by the units of one test."""
    return []


@pytest.fixture
def make_unit(journal):
    """Factory for recording units bound to the test journal."""
    def _make(name: str, **kwargs) -> RecordingUnit:
        return RecordingUnit(name, journal, **kwargs)
    return _make


@pytest.fixture
def config() -> OrchestratorConfig:
    """Configuration without probes."""
    return OrchestratorConfig(name="test-orchestrator", health_probe_enabled=False)


@pytest.fixture
def orchestrator(config) -> Orchestrator:
    """Fresh orchestrator per test."""
    return Orchestrator(config=config)
