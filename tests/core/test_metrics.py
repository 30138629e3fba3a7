"""Tests for spine_lease.core.metrics."""

import threading

from spine_lease.core.metrics import CacheMetrics, CacheSnapshot, Counter


class TestCounter:
    def test_inc(self):
        c = Counter("requests_total")
        c.inc()
        c.inc(4)
        assert c.value == 5

    def test_concurrent_increments_are_not_lost(self):
        c = Counter("requests_total")

        def work():
            for _ in range(1000):
                c.inc()

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert c.value == 8000

    def test_collect(self):
        c = Counter("hits_total", "Cache hits")
        c.inc()
        assert c.collect() == {"name": "hits_total", "type": "counter", "value": 1}


class TestCacheMetrics:
    def test_empty_snapshot(self):
        snap = CacheMetrics().snapshot()
        assert snap == CacheSnapshot(hits=0, misses=0, hit_rate=0.0)
        assert snap.total == 0

    def test_hit_rate_is_a_percentage(self):
        m = CacheMetrics()
        for _ in range(3):
            m.record_hit()
        m.record_miss()
        snap = m.snapshot()
        assert snap.hits == 3
        assert snap.misses == 1
        assert snap.total == 4
        assert snap.hit_rate == 75.0

    def test_collect_exports_both_counters(self):
        m = CacheMetrics()
        m.record_miss()
        names = {entry["name"]: entry["value"] for entry in m.collect()}
        assert names == {"resource_cache_hits_total": 0, "resource_cache_misses_total": 1}
