"""Tests for spine_lease.reclaimer.OrphanReclaimer."""

import time

import pytest
import structlog

from spine_lease.core.errors import StoreUnavailableError
from spine_lease.models import LeaseStatus
from spine_lease.pool import PoolManager
from spine_lease.reclaimer import OrphanReclaimer


def _wait_for(predicate, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def crashed_pod(registry, directory):
    """A second replica that allocates and then never releases."""
    return PoolManager(registry, directory, owner_id="pod-dead")


class TestReclaimOrphans:
    def test_stale_lease_is_returned(self, pool, crashed_pod, registry, store, clock):
        pool.initialize_resources()
        lost = crashed_pod.allocate(0.1)
        clock.advance(31)

        reclaimer = OrphanReclaimer(pool, orphaned_timeout_seconds=30)
        assert reclaimer.reclaim_orphans() == 1

        record = registry.get(lost.id)
        assert record.status == LeaseStatus.AVAILABLE
        assert record.owner_id == ""
        assert store.queue_members("terminal:pool")[-1] == lost.id
        assert reclaimer.reclaimed_total == 1

    def test_fresh_lease_is_kept(self, pool, crashed_pod, registry, clock):
        pool.initialize_resources()
        held = crashed_pod.allocate(0.1)
        clock.advance(10)

        assert OrphanReclaimer(pool, orphaned_timeout_seconds=30).reclaim_orphans() == 0
        assert registry.get(held.id).owner_id == "pod-dead"

    def test_touch_keeps_lease_alive(self, pool, registry, clock):
        pool.initialize_resources()
        held = pool.allocate(0.1)
        clock.advance(25)
        pool.touch(held.id)
        clock.advance(10)

        assert OrphanReclaimer(pool, orphaned_timeout_seconds=30).reclaim_orphans() == 0
        assert registry.get(held.id).status == LeaseStatus.IN_USE

    def test_reclaimed_resource_can_be_allocated(self, pool, crashed_pod, clock):
        pool.initialize_resources()
        lost = [crashed_pod.allocate(0.1) for _ in range(3)]
        assert pool.allocate(0.1) is None

        clock.advance(60)
        assert OrphanReclaimer(pool).reclaim_orphans() == 3
        assert pool.allocate(0.1).id == lost[0].id

    def test_store_failure_propagates(self, pool, registry, monkeypatch):
        def broken_scan():
            raise StoreUnavailableError("connection refused")

        monkeypatch.setattr(registry, "ids", broken_scan)
        with pytest.raises(StoreUnavailableError):
            OrphanReclaimer(pool).reclaim_orphans()


class TestBackgroundLoop:
    def test_start_ticks_and_stop_releases_owned(self, pool, registry):
        pool.initialize_resources()
        held = pool.allocate(0.1)
        reclaimer = OrphanReclaimer(pool)

        reclaimer.start(interval_seconds=0.02)
        assert reclaimer.is_running
        assert _wait_for(lambda: reclaimer.tick_count >= 2)

        reclaimer.stop(timeout=5.0)
        assert not reclaimer.is_running
        assert registry.get(held.id).status == LeaseStatus.AVAILABLE

    def test_loop_survives_failing_cycles(self, pool, monkeypatch):
        reclaimer = OrphanReclaimer(pool)

        def boom():
            raise StoreUnavailableError("connection refused")

        monkeypatch.setattr(reclaimer, "reclaim_orphans", boom)
        reclaimer.start(interval_seconds=0.02)
        assert _wait_for(lambda: reclaimer.tick_count >= 3)
        assert reclaimer.is_running
        reclaimer.stop(timeout=5.0)

    def test_double_start_is_ignored(self, pool):
        reclaimer = OrphanReclaimer(pool)
        reclaimer.start(interval_seconds=0.05)
        first_thread = reclaimer._thread
        reclaimer.start(interval_seconds=0.05)
        assert reclaimer._thread is first_thread
        reclaimer.stop(timeout=5.0)

    def test_stop_without_start(self, pool):
        OrphanReclaimer(pool).stop()

    def test_health(self, pool):
        reclaimer = OrphanReclaimer(pool)
        assert reclaimer.health()["healthy"] is False
        reclaimer.start(interval_seconds=0.02)
        assert _wait_for(lambda: reclaimer.tick_count >= 1)
        health = reclaimer.health()
        assert health["healthy"] is True
        assert health["interval_seconds"] == 0.02
        assert health["last_tick"] is not None
        reclaimer.stop(timeout=5.0)

    def test_health_reports_cache_counters(self, pool):
        pool.directory.lookup("A")
        pool.directory.lookup("A")

        cache = OrphanReclaimer(pool).health()["cache"]
        assert cache == {"hits": 1, "misses": 1, "hit_rate": 50.0}

    def test_loop_thread_logs_with_pod_name(self, pool, monkeypatch):
        reclaimer = OrphanReclaimer(pool)
        seen = []

        def record_context():
            seen.append(structlog.contextvars.get_contextvars().get("pod_name"))
            return 0

        monkeypatch.setattr(reclaimer, "reclaim_orphans", record_context)
        reclaimer.start(interval_seconds=0.02)
        assert _wait_for(lambda: len(seen) >= 1)
        reclaimer.stop(timeout=5.0)

        assert seen[0] == "pod-a"
