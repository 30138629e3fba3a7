"""Shutdown coordinator: hand back every lease this process holds.

Best-effort by contract. A failure on one resource is logged and the pass
moves on to the next; a failure of the whole pass (store unreachable) is
logged and swallowed so process termination is never blocked. Anything
left behind is recovered by the orphan reclaimer on another replica.
"""

from __future__ import annotations

from spine_lease.core.logging import LogContext, get_logger
from spine_lease.models import LeaseStatus
from spine_lease.pool import PoolManager

logger = get_logger(__name__)


class ShutdownCoordinator:
    """Releases resources whose owner is this process's identity."""

    def __init__(self, pool: PoolManager) -> None:
        self.pool = pool

    def release_owned(self) -> int:
        """Release every in-use lease owned by ``pool.owner_id``.

        Returns:
            Number of resources released. Never raises.
        """
        owner_id = self.pool.owner_id
        with LogContext(owner_id=owner_id):
            return self._release_owned(owner_id)

    def _release_owned(self, owner_id: str) -> int:
        registry = self.pool.registry
        released = 0
        failed = 0
        logger.info("shutdown_release_started")

        try:
            for resource_id in list(registry.ids()):
                try:
                    record = registry.get(resource_id)
                    if record is None:
                        continue
                    if record.status != LeaseStatus.IN_USE or record.owner_id != owner_id:
                        continue
                    if self.pool.release_if_owned(resource_id):
                        released += 1
                    else:
                        logger.info("shutdown_lease_changed_hands", resource_id=resource_id)
                except Exception as e:
                    failed += 1
                    logger.error("shutdown_release_failed", resource_id=resource_id, error=str(e))
        except Exception as e:
            logger.error("shutdown_release_aborted", error=str(e))

        logger.info("shutdown_release_finished", released=released, failed=failed)
        return released


__all__ = ["ShutdownCoordinator"]
