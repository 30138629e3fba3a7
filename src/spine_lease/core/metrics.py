"""Thread-safe counters for the resource directory cache.

Each :class:`~spine_lease.pool.PoolManager` (via its directory) gets its own
:class:`CacheMetrics` instance instead of sharing module-level globals, so
two managers in one process, or two tests, never see each other's counts.

Example:
    >>> metrics = CacheMetrics()
    >>> metrics.record_hit()
    >>> metrics.record_miss()
    >>> metrics.snapshot()
    CacheSnapshot(hits=1, misses=1, hit_rate=50.0)
"""

from __future__ import annotations

import threading
from typing import Any, NamedTuple


class Counter:
    """A monotonically increasing integer counter."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._lock = threading.Lock()
        self._value = 0

    def inc(self, value: int = 1) -> None:
        """Increment the counter."""
        if value < 0:
            raise ValueError("Counter can only increase")
        with self._lock:
            self._value += value

    @property
    def value(self) -> int:
        """Get current value."""
        with self._lock:
            return self._value

    def collect(self) -> dict[str, Any]:
        """Collect counter value for export."""
        return {"name": self.name, "type": "counter", "value": self.value}


class CacheSnapshot(NamedTuple):
    """Point-in-time view of cache counters.

    ``hit_rate`` is a percentage (0-100); ``0.0`` before any lookup.
    """

    hits: int
    misses: int
    hit_rate: float

    @property
    def total(self) -> int:
        return self.hits + self.misses


class CacheMetrics:
    """Hit/miss counters for the resource directory.

    Counters are monotonic for the lifetime of the instance.
    """

    def __init__(self) -> None:
        self.hits = Counter("resource_cache_hits_total", "Directory lookups served from memory")
        self.misses = Counter("resource_cache_misses_total", "Directory lookups rebuilt from config")

    def record_hit(self) -> None:
        self.hits.inc()

    def record_miss(self) -> None:
        self.misses.inc()

    def snapshot(self) -> CacheSnapshot:
        """Return hits, misses and the derived hit rate."""
        hits = self.hits.value
        misses = self.misses.value
        total = hits + misses
        hit_rate = (hits / total * 100) if total > 0 else 0.0
        return CacheSnapshot(hits=hits, misses=misses, hit_rate=hit_rate)

    def collect(self) -> list[dict[str, Any]]:
        """Collect all counters for export."""
        return [self.hits.collect(), self.misses.collect()]


__all__ = ["CacheMetrics", "CacheSnapshot", "Counter"]
