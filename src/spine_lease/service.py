"""
Lease service: the operations exposed to request handlers.

Manifesto:
    Request handlers, the CLI and the background worker all need the same
    wiring (store → registry → directory → pool → sessions → reclaimer).
    ``LeaseService`` builds it once from :class:`LeaseSettings` and exposes
    the caller-facing operations as plain methods, so an HTTP layer is a
    thin translation on top.

Architecture:
    ::

        LeaseService
        ├── ResourceDirectory   (config snapshot + cache + CacheMetrics)
        ├── LeaseRegistry       (store, key_prefix)
        ├── PoolManager         (owner_id = settings.pod_name)
        ├── SessionManager      (session_timeout_seconds)
        ├── ShutdownCoordinator
        └── OrphanReclaimer     (orphaned_timeout_seconds, reclaim_interval_seconds)

        start()  → initialize if needed (failures logged), start reclaimer
        stop()   → stop reclaimer (ends with the shutdown release pass)

Examples:
    >>> service = LeaseService.from_settings(get_settings())
    >>> service.start()
    >>> info = service.allocate()
    >>> token = service.get_or_create_session(info.id)
    >>> service.release(info.id)
    >>> service.stop()

Tags:
    spine-lease, facade, wiring, lifecycle

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Sequence

from spine_lease.core.logging import bind_context, get_logger
from spine_lease.core.metrics import CacheMetrics, CacheSnapshot
from spine_lease.core.settings import LeaseSettings
from spine_lease.directory import ResourceDirectory
from spine_lease.models import LeaseRecord, ResourceInfo
from spine_lease.pool import PoolManager, PoolSummary
from spine_lease.reclaimer import OrphanReclaimer
from spine_lease.registry import LeaseRegistry
from spine_lease.sessions import LoginFn, SessionManager, issue_session_token
from spine_lease.shutdown import ShutdownCoordinator
from spine_lease.store.protocol import CoordinationStore

logger = get_logger(__name__)


class LeaseService:
    """Caller-facing lease operations for one process."""

    def __init__(
        self,
        store: CoordinationStore,
        settings: LeaseSettings,
        *,
        records: Sequence[str] | None = None,
        login: LoginFn = issue_session_token,
        registry: LeaseRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.registry = registry or LeaseRegistry(store, key_prefix=settings.key_prefix)
        self.metrics = CacheMetrics()
        self.directory = ResourceDirectory(
            records if records is not None else settings.load_resource_records(),
            id_prefix=settings.resource_id_prefix,
            secret=settings.resource_secret,
            metrics=self.metrics,
        )
        self.pool = PoolManager(
            self.registry,
            self.directory,
            owner_id=settings.pod_name,
            initial_resource_count=settings.initial_resource_count,
        )
        self.sessions = SessionManager(
            self.registry,
            self.directory,
            session_timeout_seconds=settings.session_timeout_seconds,
            login=login,
        )
        self.shutdown_coordinator = ShutdownCoordinator(self.pool)
        self.reclaimer = OrphanReclaimer(
            self.pool,
            orphaned_timeout_seconds=settings.orphaned_timeout_seconds,
            shutdown=self.shutdown_coordinator,
        )

    @classmethod
    def from_settings(cls, settings: LeaseSettings, **kwargs) -> LeaseService:
        """Build a service backed by Redis using the two configured handles."""
        from spine_lease.store.redis import RedisCoordinationStore

        store = RedisCoordinationStore(
            settings.redis_url,
            release_url=settings.redis_release_url,
            socket_timeout=settings.redis_socket_timeout,
        )
        return cls(store, settings, **kwargs)

    @property
    def owner_id(self) -> str:
        return self.pool.owner_id

    # === Lifecycle ===

    def start(self) -> None:
        """Bring the pool up and start orphan reclamation.

        Initialization failures are logged and startup continues; the
        directory still resolves lookups lazily from configuration.
        """
        bind_context(pod_name=self.owner_id)
        try:
            if not self.settings.initialize_on_startup:
                logger.info("store_initialization_skipped")
                self.directory.preload()
            elif self.is_initialized():
                logger.info("store_already_initialized")
                self.directory.preload()
            else:
                self.initialize_resources()
        except Exception as e:
            logger.error("startup_initialization_failed", error=str(e))

        self.reclaimer.start(self.settings.reclaim_interval_seconds)

    def stop(self) -> None:
        """Stop reclamation; the loop's final action releases this owner's leases."""
        if self.reclaimer.is_running:
            self.reclaimer.stop()
        else:
            self.shutdown()

    def close(self) -> None:
        self.store.close()

    # === Operations ===

    def initialize_resources(self) -> int:
        created = self.pool.initialize_resources()
        self.directory.preload()
        return created

    def is_initialized(self) -> bool:
        return self.pool.is_initialized()

    def add_resources(self, start_index: int, count: int) -> int:
        return self.pool.add_resources(start_index, count)

    def allocate(
        self,
        wait_timeout: float | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> ResourceInfo | None:
        """Lease a resource; ``None`` on timeout. Defaults to ``allocate_timeout_seconds``."""
        if wait_timeout is None:
            wait_timeout = self.settings.allocate_timeout_seconds
        return self.pool.allocate(wait_timeout, cancel=cancel)

    def release(self, resource_id: str) -> bool:
        return self.pool.release(resource_id)

    def touch(self, resource_id: str) -> bool:
        return self.pool.touch(resource_id)

    def get_or_create_session(self, resource_id: str) -> str:
        return self.sessions.get_or_create_session(resource_id)

    def refresh_session_ttl(self, resource_id: str) -> bool:
        return self.sessions.refresh_ttl(resource_id)

    def reclaim_orphans(self) -> int:
        return self.reclaimer.reclaim_orphans()

    def shutdown(self) -> int:
        return self.shutdown_coordinator.release_owned()

    def get_cache_metrics(self) -> CacheSnapshot:
        return self.directory.cache_metrics()

    def statuses(self) -> list[LeaseRecord]:
        return self.pool.statuses()

    def pool_summary(self) -> PoolSummary:
        return self.pool.pool_summary()


__all__ = ["LeaseService"]
