"""In-process coordination store.

Implements :class:`~spine_lease.store.protocol.CoordinationStore` with plain
dicts guarded by one ``threading.Condition``. ``dequeue`` genuinely blocks,
so allocation timeouts and wake-ups on release behave as they do against
Redis. Shared only between threads of one process.

Example:
    >>> store = InMemoryCoordinationStore()
    >>> store.enqueue("pool", "T1")
    >>> store.dequeue("pool", timeout=0.1)
    'T1'
"""

from __future__ import annotations

import fnmatch
import threading
import time
from collections import deque
from collections.abc import Callable, Iterator, Mapping


class InMemoryCoordinationStore:
    """Thread-safe, single-process store with TTL support.

    TTL expiry is lazy: checked whenever a key is touched.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._cond = threading.Condition()
        self._clock = clock
        self._strings: dict[str, str] = {}
        self._hashes: dict[str, dict[str, str]] = {}
        self._queues: dict[str, deque[str]] = {}
        self._expires_at: dict[str, float] = {}

    # -- internals (caller holds the lock) --------------------------------

    def _purge_if_expired(self, key: str) -> None:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self._strings.pop(key, None)
            self._hashes.pop(key, None)
            self._queues.pop(key, None)
            self._expires_at.pop(key, None)

    def _exists(self, key: str) -> bool:
        self._purge_if_expired(key)
        return key in self._strings or key in self._hashes or bool(self._queues.get(key))

    # -- queues -----------------------------------------------------------

    def dequeue(self, queue_key: str, timeout: float) -> str | None:
        if timeout <= 0:
            raise ValueError("dequeue timeout must be positive")
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                queue = self._queues.get(queue_key)
                if queue:
                    member = queue.popleft()
                    if not queue:
                        del self._queues[queue_key]
                    return member
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def enqueue(self, queue_key: str, member: str) -> None:
        with self._cond:
            self._queues.setdefault(queue_key, deque()).append(member)
            self._cond.notify_all()

    def queue_length(self, queue_key: str) -> int:
        with self._cond:
            return len(self._queues.get(queue_key, ()))

    def queue_members(self, queue_key: str) -> list[str]:
        """Snapshot of a queue, head first (inspection helper)."""
        with self._cond:
            return list(self._queues.get(queue_key, ()))

    # -- hashes -----------------------------------------------------------

    def hash_get(self, key: str) -> dict[str, str]:
        with self._cond:
            self._purge_if_expired(key)
            return dict(self._hashes.get(key, {}))

    def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        with self._cond:
            self._purge_if_expired(key)
            self._hashes.setdefault(key, {}).update(mapping)

    def hash_set_if(
        self,
        key: str,
        field: str,
        expected: str,
        mapping: Mapping[str, str],
    ) -> bool:
        with self._cond:
            self._purge_if_expired(key)
            current = self._hashes.get(key)
            if current is None or current.get(field) != expected:
                return False
            current.update(mapping)
            return True

    # -- keys -------------------------------------------------------------

    def exists(self, key: str) -> bool:
        with self._cond:
            return self._exists(key)

    def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._cond:
            if not self._exists(key):
                return False
            self._expires_at[key] = self._clock() + ttl_seconds
            return True

    def ttl(self, key: str) -> float | None:
        """Seconds until ``key`` expires; ``None`` if missing or persistent."""
        with self._cond:
            if not self._exists(key) or key not in self._expires_at:
                return None
            return self._expires_at[key] - self._clock()

    def scan_keys(self, pattern: str) -> Iterator[str]:
        with self._cond:
            keys = list(self._strings) + list(self._hashes) + list(self._queues)
            matched = [k for k in keys if fnmatch.fnmatchcase(k, pattern) and self._exists(k)]
        yield from matched

    # -- strings ----------------------------------------------------------

    def get(self, key: str) -> str | None:
        with self._cond:
            self._purge_if_expired(key)
            return self._strings.get(key)

    def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        with self._cond:
            self._strings[key] = value
            if ttl_seconds:
                self._expires_at[key] = self._clock() + ttl_seconds
            else:
                self._expires_at.pop(key, None)

    def close(self) -> None:
        """No connections to release."""


__all__ = ["InMemoryCoordinationStore"]
