"""
Pool manager: exclusive allocation and release of resources.

Manifesto:
    Many identical replicas draw from one shared pool. The only thing that
    may decide which replica gets a resource is the coordination store's
    atomic dequeue; the only thing that may decide whether a dequeued id is
    really free is an atomic compare-and-set on its lease record. No
    replica-local lock participates in either decision.

Architecture:
    ::

        allocate(wait)                          release(id)
        ───────────────                         ───────────
        BLPOP pool (blocking handle)            HSET status:{id} available
          │  none before deadline → None        RPUSH pool id
          ▼                                     (release handle only; status
        CAS status:{id} available→in_use         first so a racing allocate
          │  lost (stale/duplicate) → retry      never sees the id before
          ▼                                      the record is available)
        directory.lookup(id)
          │  missing → ResourceNotFoundError
          │  (record stays in_use; the orphan
          │   reclaimer frees it later)
          ▼
        ResourceInfo

    State per resource::

        available ──allocate──► in_use ──release──► available
                                  │
                                  └─reclaim / shutdown──► available

Guardrails:
    ❌ DON'T: Put a resource back in the pool when its metadata is missing
    ✅ DO: Leave it in_use and let reclamation repair it

    ❌ DON'T: Treat an empty pool as an error
    ✅ DO: Return ``None`` so callers can retry or shed load

Tags:
    spine-lease, allocation, leases, blpop, compare-and-set, state-machine

Doc-Types:
    api-reference, architecture
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from spine_lease.core.errors import ConfigError, ResourceNotFoundError
from spine_lease.core.logging import get_logger
from spine_lease.directory import ResourceDirectory
from spine_lease.models import LeaseRecord, LeaseStatus, ResourceInfo
from spine_lease.registry import LeaseRegistry

logger = get_logger(__name__)

# Shortest wait handed to the store; BLPOP treats 0 as "forever"
MIN_WAIT_SECONDS = 0.01


@dataclass(frozen=True)
class PoolSummary:
    """Operator view of the pool."""

    total: int
    available: int
    in_use: int
    queued: int


class PoolManager:
    """Allocates and releases resources on behalf of one owner identity.

    Example:
        >>> manager = PoolManager(registry, directory, owner_id="pod-a")
        >>> manager.initialize_resources()
        3
        >>> info = manager.allocate(5.0)
        >>> manager.release(info.id)
    """

    def __init__(
        self,
        registry: LeaseRegistry,
        directory: ResourceDirectory,
        *,
        owner_id: str,
        initial_resource_count: int = 0,
        wait_slice_seconds: float = 1.0,
    ) -> None:
        """Initialize the pool manager.

        Args:
            registry: Lease record access.
            directory: Static metadata lookup.
            owner_id: Identity written into records this process claims.
            initial_resource_count: Size of the initial set (0 = all configured).
            wait_slice_seconds: Longest single store wait while a cancel event
                is being honored.
        """
        if not owner_id or not owner_id.strip():
            raise ConfigError("owner_id must be non-empty")
        self.registry = registry
        self.directory = directory
        self.owner_id = owner_id
        self.initial_resource_count = initial_resource_count
        self.wait_slice_seconds = wait_slice_seconds

    @property
    def store(self):
        return self.registry.store

    # === Initialization ===

    def _initial_window(self) -> int | None:
        return self.initial_resource_count or None

    def _register(self, info: ResourceInfo) -> bool:
        """Create the lease record and pool entry for ``info`` if it has none."""
        self.directory.remember(info)
        if self.registry.exists(info.id):
            logger.debug("resource_already_registered", resource_id=info.id)
            return False
        self.registry.mark_available(info.id)
        self.store.enqueue(self.registry.pool_key, info.id)
        logger.info("resource_registered", resource_id=info.id)
        return True

    def initialize_resources(self) -> int:
        """Create lease records for the initial configured set.

        Existing records are left as they are, so running this on every
        replica start is safe. Returns the number of records created.
        """
        resources = self.directory.configured(1, self._initial_window())
        if not resources:
            logger.warning("no_resources_configured")
            return 0
        created = sum(1 for info in resources if self._register(info))
        logger.info("resources_initialized", configured=len(resources), created=created)
        return created

    def is_initialized(self) -> bool:
        """True iff the store holds exactly one record per initial resource."""
        expected = len(self.directory.configured(1, self._initial_window()))
        return expected > 0 and self.registry.count() == expected

    def add_resources(self, start_index: int, count: int) -> int:
        """Register configured resources at 1-based positions ``start_index..start_index+count-1``.

        Ids that already have a record are skipped, so expansions can be
        re-run without disturbing live leases. Returns the number created.
        """
        if start_index < 1:
            raise ConfigError(f"start_index must be >= 1, got {start_index}")
        if count <= 0:
            raise ConfigError(f"count must be > 0, got {count}")
        resources = self.directory.configured(start_index, count)
        created = sum(1 for info in resources if self._register(info))
        logger.info(
            "resources_added",
            start_index=start_index,
            requested=count,
            created=created,
        )
        return created

    # === Allocation ===

    def allocate(
        self,
        wait_timeout: float,
        *,
        cancel: threading.Event | None = None,
    ) -> ResourceInfo | None:
        """Lease one resource exclusively to this owner.

        Args:
            wait_timeout: Seconds to wait for a resource while the pool is empty.
            cancel: Optional event; once set, the wait ends early without
                touching any state.

        Returns:
            The leased resource, or ``None`` when the wait ran out (or was
            cancelled) before one became available.

        Raises:
            ResourceNotFoundError: A resource was leased but has no metadata.
                It stays in_use under this owner until reclaimed.
            StoreUnavailableError: The coordination store failed.
        """
        if wait_timeout < 0:
            raise ConfigError(f"wait_timeout must be >= 0, got {wait_timeout}")

        deadline = time.monotonic() + max(wait_timeout, MIN_WAIT_SECONDS)
        while True:
            if cancel is not None and cancel.is_set():
                logger.info("allocate_cancelled", owner_id=self.owner_id)
                return None
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info("allocate_timed_out", owner_id=self.owner_id, wait_timeout=wait_timeout)
                return None

            wait = remaining if cancel is None else min(remaining, self.wait_slice_seconds)
            resource_id = self.store.dequeue(self.registry.pool_key, max(wait, MIN_WAIT_SECONDS))
            if resource_id is None:
                continue

            record = self.registry.claim(resource_id, self.owner_id)
            if record is None:
                # Duplicate entry from an idempotent release/reclaim, or an id with no record
                logger.debug("stale_pool_entry_skipped", resource_id=resource_id)
                continue

            info = self.directory.lookup(resource_id)
            if info is None:
                logger.error(
                    "allocated_resource_metadata_missing",
                    resource_id=resource_id,
                    owner_id=self.owner_id,
                )
                raise ResourceNotFoundError(
                    f"no metadata for allocated resource {resource_id!r}"
                ).with_context(resource_id=resource_id, owner_id=self.owner_id, operation="allocate")

            logger.info("resource_allocated", resource_id=resource_id, owner_id=self.owner_id)
            return info

    def release(self, resource_id: str) -> bool:
        """Return a resource to the pool.

        Blank ids and ids without a lease record are ignored (``False``), so
        a mistyped id never enters the pool. Releasing an already-available
        resource republishes it; the extra pool entry is skipped by
        ``allocate``.
        """
        if not resource_id or not resource_id.strip():
            logger.debug("release_ignored_blank_id")
            return False
        if not self.registry.exists(resource_id):
            logger.warning("release_unknown_resource", resource_id=resource_id)
            return False

        self.registry.mark_available(resource_id)
        self.store.enqueue(self.registry.pool_key, resource_id)
        logger.info("resource_released", resource_id=resource_id, owner_id=self.owner_id)
        return True

    def release_if_owned(self, resource_id: str) -> bool:
        """Release ``resource_id`` only while this owner still holds it.

        The status write is conditional on ``owner_id``, so a lease that was
        reclaimed and handed to another replica in the meantime is left alone.
        """
        if not self.registry.release_if_owned(resource_id, self.owner_id):
            return False
        self.store.enqueue(self.registry.pool_key, resource_id)
        logger.info("resource_released", resource_id=resource_id, owner_id=self.owner_id)
        return True

    def touch(self, resource_id: str) -> bool:
        """Refresh the activity timestamp of a held lease so it is not reclaimed."""
        touched = self.registry.touch(resource_id)
        if touched:
            logger.debug("lease_activity_refreshed", resource_id=resource_id)
        else:
            logger.warning("lease_touch_unknown_resource", resource_id=resource_id)
        return touched

    # === Inspection ===

    def statuses(self) -> list[LeaseRecord]:
        return self.registry.records()

    def owned(self) -> list[LeaseRecord]:
        """Records currently in use by this owner."""
        return [
            r for r in self.registry.records()
            if r.status == LeaseStatus.IN_USE and r.owner_id == self.owner_id
        ]

    def pool_summary(self) -> PoolSummary:
        records = self.registry.records()
        available = sum(1 for r in records if r.is_available)
        return PoolSummary(
            total=len(records),
            available=available,
            in_use=len(records) - available,
            queued=self.store.queue_length(self.registry.pool_key),
        )


__all__ = ["MIN_WAIT_SECONDS", "PoolManager", "PoolSummary"]
