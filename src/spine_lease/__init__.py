"""
spine-lease - exclusive leases on a shared pool of terminals.

Many identical service replicas draw terminals from one pool held in a
coordination store (Redis). A terminal is leased to exactly one replica at
a time, its login session is shared across leases, and leases abandoned by
crashed replicas are reclaimed in the background.

- spine_lease.core: errors, logging, settings, metrics
- spine_lease.store: coordination store protocol, in-memory and Redis adapters
- spine_lease.service: ``LeaseService``, the wired-up facade
- spine_lease.cli: the ``spine-lease`` command line
"""

__version__ = "0.1.0"

from spine_lease.core.errors import (
    ConfigError,
    InvalidResourceRecordError,
    LeaseError,
    ResourceNotFoundError,
    StoreUnavailableError,
)
from spine_lease.core.settings import LeaseSettings, get_settings
from spine_lease.directory import ResourceDirectory
from spine_lease.models import LeaseRecord, LeaseStatus, ResourceInfo
from spine_lease.pool import PoolManager, PoolSummary
from spine_lease.reclaimer import OrphanReclaimer
from spine_lease.registry import LeaseRegistry
from spine_lease.service import LeaseService
from spine_lease.sessions import SessionManager
from spine_lease.shutdown import ShutdownCoordinator

__all__ = [
    "ConfigError",
    "InvalidResourceRecordError",
    "LeaseError",
    "LeaseRecord",
    "LeaseRegistry",
    "LeaseService",
    "LeaseSettings",
    "LeaseStatus",
    "OrphanReclaimer",
    "PoolManager",
    "PoolSummary",
    "ResourceDirectory",
    "ResourceInfo",
    "ResourceNotFoundError",
    "SessionManager",
    "ShutdownCoordinator",
    "StoreUnavailableError",
    "__version__",
    "get_settings",
]
