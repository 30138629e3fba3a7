"""Coordination store protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  COORDINATION STORE CONTRACT                                                  │
│                                                                               │
│  All cross-replica exclusion is delegated to the store. The lease manager    │
│  never takes an in-process lock to protect shared state; it relies on:       │
│                                                                               │
│    dequeue      atomic remove-one with bounded blocking wait (BLPOP)         │
│    hash_set_if  atomic compare-and-set of a hash (Lua script)                │
│                                                                               │
│  Implementations:                                                             │
│    InMemoryCoordinationStore  — single process, dev and tests               │
│    RedisCoordinationStore     — shared, two connections:                     │
│                                   blocking handle  → dequeue only            │
│                                   release handle   → everything else         │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class CoordinationStore(Protocol):
    """Primitive operations the lease manager consumes from the shared store.

    Values are strings. Hash fields and values are strings.
    """

    def dequeue(self, queue_key: str, timeout: float) -> str | None:
        """Atomically remove and return the head of a queue.

        Blocks up to ``timeout`` seconds while the queue is empty.
        ``timeout`` must be positive; returns ``None`` when it elapses.
        """
        ...

    def enqueue(self, queue_key: str, member: str) -> None:
        """Append ``member`` to the tail of a queue without blocking."""
        ...

    def queue_length(self, queue_key: str) -> int:
        """Number of entries currently queued (duplicates included)."""
        ...

    def hash_get(self, key: str) -> dict[str, str]:
        """All fields of a hash; empty dict if the key does not exist."""
        ...

    def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        """Set the given fields of a hash, creating it if needed."""
        ...

    def hash_set_if(
        self,
        key: str,
        field: str,
        expected: str,
        mapping: Mapping[str, str],
    ) -> bool:
        """Atomically apply ``mapping`` only if ``field`` currently equals ``expected``.

        Returns ``False`` (and writes nothing) if the hash is missing or the
        field holds a different value.
        """
        ...

    def exists(self, key: str) -> bool:
        """Whether ``key`` exists (and has not expired)."""
        ...

    def expire(self, key: str, ttl_seconds: int) -> bool:
        """Reset the TTL of an existing key. ``False`` if the key is missing."""
        ...

    def scan_keys(self, pattern: str) -> Iterator[str]:
        """Iterate keys matching a glob ``pattern`` incrementally."""
        ...

    def get(self, key: str) -> str | None:
        """Read a string value; ``None`` if missing or expired."""
        ...

    def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        """Write a string value with optional TTL."""
        ...

    def close(self) -> None:
        """Release connections held by the store."""
        ...
