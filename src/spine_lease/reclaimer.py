"""Orphan reclaimer: background repair of leases abandoned by dead replicas.

┌──────────────────────────────────────────────────────────────────────────────┐
│  RECLAIMER LOOP                                                               │
│                                                                               │
│   start()                                                                     │
│      │                                                                        │
│      ▼                                                                        │
│   ┌──────────────────── daemon thread ───────────────────────┐               │
│   │  while True:                                              │               │
│   │      reclaim_orphans()        (errors logged, loop lives) │               │
│   │      if stop_event.wait(interval): break                  │               │
│   │  finally:                                                 │               │
│   │      shutdown.release_owned() (best-effort drain)         │               │
│   └───────────────────────────────────────────────────────────┘               │
│                                                                               │
│   stop() → stop_event.set(); thread.join(timeout)                             │
│                                                                               │
│  A record is an orphan when status = in_use and last_activity is older       │
│  than orphaned_timeout_seconds. Each record is checked and rewritten on      │
│  its own (conditional on the timestamp it was read with); there is no        │
│  global lock across the scan.                                                 │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

from spine_lease.core.logging import bind_context, get_logger
from spine_lease.pool import PoolManager
from spine_lease.shutdown import ShutdownCoordinator

logger = get_logger(__name__)


class OrphanReclaimer:
    """Periodically returns stale in-use resources to the pool.

    Example:
        >>> reclaimer = OrphanReclaimer(pool, orphaned_timeout_seconds=30)
        >>> reclaimer.reclaim_orphans()
        0
        >>> reclaimer.start(interval_seconds=15)
        >>> # ... on SIGTERM ...
        >>> reclaimer.stop()
    """

    def __init__(
        self,
        pool: PoolManager,
        *,
        orphaned_timeout_seconds: float = 30,
        shutdown: ShutdownCoordinator | None = None,
    ) -> None:
        self.pool = pool
        self.orphaned_timeout_seconds = orphaned_timeout_seconds
        self.shutdown = shutdown or ShutdownCoordinator(pool)

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._interval: float = 15.0
        self._tick_count = 0
        self._last_tick: datetime | None = None
        self._reclaimed_total = 0
        self._started = False

    # === One cycle ===

    def reclaim_orphans(self) -> int:
        """Scan all lease records once and free the stale in-use ones.

        Returns:
            Number of resources returned to the pool.

        Raises:
            StoreUnavailableError: the scan or a write failed.
        """
        registry = self.pool.registry
        threshold = registry.clock() - self.orphaned_timeout_seconds
        reclaimed = 0

        for resource_id in list(registry.ids()):
            if not registry.reclaim_if_stale(resource_id, threshold):
                continue
            self.pool.store.enqueue(registry.pool_key, resource_id)
            reclaimed += 1
            logger.warning("orphan_reclaimed", resource_id=resource_id)

        with self._lock:
            self._reclaimed_total += reclaimed
        logger.debug("orphan_scan_finished", reclaimed=reclaimed)
        return reclaimed

    # === Background loop ===

    def start(self, interval_seconds: float = 15.0) -> None:
        """Run :meth:`reclaim_orphans` every ``interval_seconds`` in a daemon thread."""
        if self._started:
            logger.warning("reclaimer_already_started")
            return

        self._interval = interval_seconds
        self._stop_event.clear()

        def _loop() -> None:
            # contextvars are per thread
            bind_context(pod_name=self.pool.owner_id)
            logger.info("reclaimer_started", interval_seconds=interval_seconds)
            try:
                while True:
                    with self._lock:
                        self._tick_count += 1
                        self._last_tick = datetime.now(UTC)
                    try:
                        self.reclaim_orphans()
                    except Exception as e:
                        logger.error("reclaim_cycle_failed", error=str(e))
                    cache = self.pool.directory.cache_metrics()
                    logger.info(
                        "resource_cache_stats",
                        hits=cache.hits,
                        misses=cache.misses,
                        hit_rate=round(cache.hit_rate, 2),
                    )
                    if self._stop_event.wait(interval_seconds):
                        break
            finally:
                self.shutdown.release_owned()
                logger.info("reclaimer_stopped")

        self._thread = threading.Thread(target=_loop, daemon=True, name="spine-lease-reclaimer")
        self._thread.start()
        self._started = True

    def stop(self, timeout: float = 10.0) -> None:
        """Signal the loop to exit and wait for its final release pass."""
        if not self._started:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("reclaimer_thread_did_not_stop")

        self._started = False

    def health(self) -> dict[str, Any]:
        return {
            "healthy": self.is_running,
            "tick_count": self._tick_count,
            "last_tick": self._last_tick.isoformat() if self._last_tick else None,
            "interval_seconds": self._interval,
            "reclaimed_total": self._reclaimed_total,
            "cache": self.pool.directory.cache_metrics()._asdict(),
        }

    @property
    def is_running(self) -> bool:
        return self._started and self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def reclaimed_total(self) -> int:
        return self._reclaimed_total


__all__ = ["OrphanReclaimer"]
