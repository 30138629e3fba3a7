"""spine_lease.core -- cross-cutting primitives with no lease semantics.

Architecture::

    errors.py     LeaseError hierarchy (StoreUnavailableError, ResourceNotFoundError, ConfigError)
    logging.py    structlog configuration and context binding
    settings.py   LeaseSettings (pydantic-settings, ``LEASE_*`` / ``POD_NAME``)
    metrics.py    thread-safe counters and cache hit/miss snapshots
"""

from spine_lease.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidResourceRecordError,
    LeaseError,
    ResourceNotFoundError,
    StoreUnavailableError,
)
from spine_lease.core.logging import configure_from_settings, configure_logging, get_logger
from spine_lease.core.metrics import CacheMetrics, CacheSnapshot, Counter
from spine_lease.core.settings import LeaseSettings, clear_settings_cache, get_settings

__all__ = [
    "CacheMetrics",
    "CacheSnapshot",
    "ConfigError",
    "Counter",
    "ErrorCategory",
    "ErrorContext",
    "InvalidResourceRecordError",
    "LeaseError",
    "LeaseSettings",
    "ResourceNotFoundError",
    "StoreUnavailableError",
    "clear_settings_cache",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "get_settings",
]
