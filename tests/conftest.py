"""
Shared pytest fixtures for spine-lease tests.

Provides:
- An in-memory coordination store and a controllable clock
- A three-resource catalogue (A, B, C)
- Registry / directory / pool / service wired against the in-memory store
"""

from __future__ import annotations

import threading

import pytest
import structlog

from spine_lease.core.logging import configure_logging
from spine_lease.core.settings import LeaseSettings, clear_settings_cache
from spine_lease.directory import ResourceDirectory
from spine_lease.pool import PoolManager
from spine_lease.registry import LeaseRegistry
from spine_lease.service import LeaseService
from spine_lease.store.memory import InMemoryCoordinationStore

RECORDS = [
    "10.0.0.1|22|user-a|pw-a|A|north",
    "10.0.0.2|22|user-b|pw-b|B|north",
    "10.0.0.3|2222|user-c|pw-c|C|south",
]


class FakeClock:
    """Manually advanced wall clock, safe to read from several threads."""

    def __init__(self, start: float = 1_000.0):
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += seconds


@pytest.fixture(autouse=True)
def _isolate_global_state():
    """Route logs through stdlib (captured by pytest, never mixed into CLI
    output) and reset context and the settings cache between tests."""
    configure_logging(level="INFO", json_format=True)
    structlog.contextvars.clear_contextvars()
    clear_settings_cache()
    yield
    structlog.contextvars.clear_contextvars()
    clear_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryCoordinationStore:
    return InMemoryCoordinationStore()


@pytest.fixture
def records() -> list[str]:
    return list(RECORDS)


@pytest.fixture
def registry(store, clock) -> LeaseRegistry:
    return LeaseRegistry(store, clock=clock)


@pytest.fixture
def directory(records) -> ResourceDirectory:
    return ResourceDirectory(records)


@pytest.fixture
def pool(registry, directory) -> PoolManager:
    return PoolManager(registry, directory, owner_id="pod-a", wait_slice_seconds=0.05)


@pytest.fixture
def settings(records) -> LeaseSettings:
    return LeaseSettings(
        _env_file=None,
        resource_records=records,
        pod_name="pod-a",
        reclaim_interval_seconds=0.05,
        allocate_timeout_seconds=0.2,
    )


@pytest.fixture
def service(store, settings):
    svc = LeaseService(store, settings)
    yield svc
    if svc.reclaimer.is_running:
        svc.reclaimer.stop()
