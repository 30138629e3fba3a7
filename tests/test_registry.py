"""Tests for spine_lease.registry.LeaseRegistry."""

from spine_lease.models import LeaseRecord, LeaseStatus
from spine_lease.registry import LeaseRegistry


class TestKeys:
    def test_default_layout(self, registry):
        assert registry.pool_key == "terminal:pool"
        assert registry.status_key("A") == "terminal:status:A"
        assert registry.session_key("A") == "terminal:session:A"

    def test_custom_prefix(self, store):
        registry = LeaseRegistry(store, key_prefix="lab")
        assert registry.pool_key == "lab:pool"
        assert registry.status_key("A") == "lab:status:A"


class TestRecords:
    def test_mark_available_and_get(self, registry, clock):
        registry.mark_available("A")
        assert registry.get("A") == LeaseRecord("A", LeaseStatus.AVAILABLE, "", clock())
        assert registry.exists("A")
        assert registry.get("Z") is None

    def test_ids_and_records_sorted(self, registry):
        for rid in ("C", "A", "B"):
            registry.mark_available(rid)
        registry.store.set(registry.session_key("A"), "tok")
        assert sorted(registry.ids()) == ["A", "B", "C"]
        assert [r.resource_id for r in registry.records()] == ["A", "B", "C"]
        assert registry.count() == 3

    def test_touch(self, registry, clock):
        assert registry.touch("A") is False
        registry.mark_available("A")
        clock.advance(5)
        assert registry.touch("A") is True
        assert registry.get("A").last_activity == clock()


class TestClaim:
    def test_claim_available(self, registry, clock):
        registry.mark_available("A")
        record = registry.claim("A", "pod-a")
        assert record == LeaseRecord("A", LeaseStatus.IN_USE, "pod-a", clock())
        assert registry.get("A") == record

    def test_claim_in_use_fails(self, registry):
        registry.mark_available("A")
        registry.claim("A", "pod-a")
        assert registry.claim("A", "pod-b") is None
        assert registry.get("A").owner_id == "pod-a"

    def test_claim_missing_record_fails(self, registry):
        assert registry.claim("ghost", "pod-a") is None
        assert not registry.exists("ghost")


class TestReclaimIfStale:
    def test_stale_in_use_is_freed(self, registry, clock):
        registry.mark_available("A")
        registry.claim("A", "pod-a")
        clock.advance(31)
        assert registry.reclaim_if_stale("A", clock() - 30) is True
        record = registry.get("A")
        assert record.status == LeaseStatus.AVAILABLE
        assert record.owner_id == ""
        assert record.last_activity == clock()

    def test_fresh_or_available_left_alone(self, registry, clock):
        registry.mark_available("A")
        registry.mark_available("B")
        registry.claim("B", "pod-a")
        clock.advance(10)
        assert registry.reclaim_if_stale("A", clock() - 30) is False
        assert registry.reclaim_if_stale("B", clock() - 30) is False
        assert registry.get("B").status == LeaseStatus.IN_USE

    def test_refresh_between_read_and_write_wins(self, registry, clock, monkeypatch):
        registry.mark_available("A")
        registry.claim("A", "pod-a")
        stale_view = registry.store.hash_get(registry.status_key("A"))

        clock.advance(40)
        registry.touch("A")
        monkeypatch.setattr(registry.store, "hash_get", lambda key: dict(stale_view))

        assert registry.reclaim_if_stale("A", clock() - 30) is False
        monkeypatch.undo()
        record = registry.get("A")
        assert record.status == LeaseStatus.IN_USE
        assert record.owner_id == "pod-a"

    def test_missing_record(self, registry, clock):
        assert registry.reclaim_if_stale("ghost", clock()) is False


class TestReleaseIfOwned:
    def test_owner_matches(self, registry, clock):
        registry.mark_available("A")
        registry.claim("A", "pod-a")
        clock.advance(2)

        assert registry.release_if_owned("A", "pod-a") is True
        record = registry.get("A")
        assert record.status == LeaseStatus.AVAILABLE
        assert record.owner_id == ""
        assert record.last_activity == clock()

    def test_other_owner_or_missing(self, registry):
        registry.mark_available("A")
        registry.claim("A", "pod-b")

        assert registry.release_if_owned("A", "pod-a") is False
        assert registry.get("A").owner_id == "pod-b"
        assert registry.release_if_owned("ghost", "pod-a") is False
        assert not registry.exists("ghost")
