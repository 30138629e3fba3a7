"""Lease registry: per-resource lease records in the coordination store.

Key layout (``key_prefix`` defaults to ``terminal``)::

    {prefix}:status:{resource_id}   HASH  status, owner_id, last_activity
    {prefix}:session:{resource_id}  STRING session token (SessionManager)
    {prefix}:pool                   LIST  available resource ids

Every method is a single store round-trip or a read followed by one
conditional write; nothing here holds a lock across records.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator

from spine_lease.core.logging import get_logger
from spine_lease.models import LeaseRecord, LeaseStatus, format_timestamp
from spine_lease.store.protocol import CoordinationStore

logger = get_logger(__name__)


class LeaseRegistry:
    """Reads and writes :class:`LeaseRecord` hashes."""

    def __init__(
        self,
        store: CoordinationStore,
        *,
        key_prefix: str = "terminal",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.key_prefix = key_prefix
        self.clock = clock
        self._status_prefix = f"{key_prefix}:status:"

    # -- keys -------------------------------------------------------------

    @property
    def pool_key(self) -> str:
        return f"{self.key_prefix}:pool"

    def status_key(self, resource_id: str) -> str:
        return f"{self._status_prefix}{resource_id}"

    def session_key(self, resource_id: str) -> str:
        return f"{self.key_prefix}:session:{resource_id}"

    # -- reads ------------------------------------------------------------

    def exists(self, resource_id: str) -> bool:
        return self.store.exists(self.status_key(resource_id))

    def get(self, resource_id: str) -> LeaseRecord | None:
        fields = self.store.hash_get(self.status_key(resource_id))
        if not fields:
            return None
        return LeaseRecord.from_hash(resource_id, fields)

    def ids(self) -> Iterator[str]:
        """Iterate the ids of every lease record (incremental scan)."""
        for key in self.store.scan_keys(f"{self._status_prefix}*"):
            yield key[len(self._status_prefix):]

    def records(self) -> list[LeaseRecord]:
        """Snapshot of all lease records, sorted by id.

        Records that vanish between scan and read are skipped.
        """
        records = []
        for resource_id in self.ids():
            record = self.get(resource_id)
            if record is not None:
                records.append(record)
        return sorted(records, key=lambda r: r.resource_id)

    def count(self) -> int:
        return sum(1 for _ in self.ids())

    # -- writes -----------------------------------------------------------

    def put(self, record: LeaseRecord) -> None:
        self.store.hash_set(self.status_key(record.resource_id), record.to_hash())

    def mark_available(self, resource_id: str) -> LeaseRecord:
        """Unconditionally set ``available``, clear the owner, refresh activity."""
        record = LeaseRecord(
            resource_id=resource_id,
            status=LeaseStatus.AVAILABLE,
            owner_id="",
            last_activity=self.clock(),
        )
        self.put(record)
        return record

    def claim(self, resource_id: str, owner_id: str) -> LeaseRecord | None:
        """Flip an ``available`` record to ``in_use`` for ``owner_id``.

        Returns ``None`` without writing if the record is missing or already
        in use (a stale or duplicate pool entry).
        """
        record = LeaseRecord(
            resource_id=resource_id,
            status=LeaseStatus.IN_USE,
            owner_id=owner_id,
            last_activity=self.clock(),
        )
        claimed = self.store.hash_set_if(
            self.status_key(resource_id),
            "status",
            LeaseStatus.AVAILABLE.value,
            record.to_hash(),
        )
        return record if claimed else None

    def touch(self, resource_id: str) -> bool:
        """Refresh ``last_activity`` of an existing record. ``False`` if missing."""
        key = self.status_key(resource_id)
        if not self.store.exists(key):
            return False
        self.store.hash_set(key, {"last_activity": format_timestamp(self.clock())})
        return True

    def release_if_owned(self, resource_id: str, owner_id: str) -> bool:
        """Set ``available`` only if ``owner_id`` still holds the record."""
        freed = LeaseRecord(resource_id=resource_id, last_activity=self.clock())
        return self.store.hash_set_if(
            self.status_key(resource_id), "owner_id", owner_id, freed.to_hash()
        )

    def reclaim_if_stale(self, resource_id: str, older_than: float) -> bool:
        """Return an in-use record to ``available`` if its activity predates ``older_than``.

        The write is conditional on ``last_activity`` still holding the value
        that was read, so a lease refreshed or re-allocated in between is left
        alone.
        """
        key = self.status_key(resource_id)
        fields = self.store.hash_get(key)
        if not fields:
            return False
        record = LeaseRecord.from_hash(resource_id, fields)
        if record.status != LeaseStatus.IN_USE or record.last_activity >= older_than:
            return False

        freed = LeaseRecord(resource_id=resource_id, last_activity=self.clock())
        observed = fields.get("last_activity")
        if observed is None:
            # Record without a timestamp; fall back to the status guard
            return self.store.hash_set_if(key, "status", LeaseStatus.IN_USE.value, freed.to_hash())
        return self.store.hash_set_if(key, "last_activity", observed, freed.to_hash())


__all__ = ["LeaseRegistry"]
