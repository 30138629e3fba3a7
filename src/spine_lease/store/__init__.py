"""Coordination store adapters.

``InMemoryCoordinationStore`` for single-process use and tests,
``RedisCoordinationStore`` for replicas sharing one pool. The Redis adapter
is imported lazily so the in-memory store works without a Redis client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from spine_lease.store.memory import InMemoryCoordinationStore
from spine_lease.store.protocol import CoordinationStore

if TYPE_CHECKING:
    from spine_lease.store.redis import RedisCoordinationStore


def __getattr__(name: str):
    if name == "RedisCoordinationStore":
        from spine_lease.store.redis import RedisCoordinationStore

        return RedisCoordinationStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["CoordinationStore", "InMemoryCoordinationStore", "RedisCoordinationStore"]
