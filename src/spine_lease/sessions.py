"""Session manager: time-boxed login tokens bound to leased resources.

Logging in to a terminal is slow and rate-limited on the terminal side, so a
token obtained for a resource is kept in the store under
``{prefix}:session:{id}`` and reused by whichever replica leases that
resource next, for as long as the TTL keeps being refreshed.

The login step itself is pluggable (``login`` callable); the default issues
an opaque ``session-<uuid>`` token without contacting anything.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable

from spine_lease.core.errors import ConfigError, ResourceNotFoundError
from spine_lease.core.logging import get_logger
from spine_lease.directory import ResourceDirectory
from spine_lease.models import ResourceInfo
from spine_lease.registry import LeaseRegistry

logger = get_logger(__name__)

LoginFn = Callable[[ResourceInfo], str]


def issue_session_token(resource: ResourceInfo) -> str:
    """Default login: mint an opaque token for ``resource``."""
    return f"session-{uuid.uuid4()}"


class SessionManager:
    """Issues and renews session tokens with a fixed TTL."""

    def __init__(
        self,
        registry: LeaseRegistry,
        directory: ResourceDirectory,
        *,
        session_timeout_seconds: int = 300,
        login: LoginFn = issue_session_token,
    ) -> None:
        if session_timeout_seconds <= 0:
            raise ConfigError("session_timeout_seconds must be > 0")
        self.registry = registry
        self.directory = directory
        self.session_timeout_seconds = session_timeout_seconds
        self._login = login

    def get_or_create_session(self, resource_id: str) -> str:
        """Return the live token for ``resource_id``, logging in if there is none.

        An existing token has its TTL reset. Concurrent first calls for the
        same resource may both log in; the last token written wins.

        Raises:
            ConfigError: blank ``resource_id``.
            ResourceNotFoundError: no metadata to log in with.
        """
        if not resource_id or not resource_id.strip():
            raise ConfigError("resource_id must be non-empty")

        store = self.registry.store
        key = self.registry.session_key(resource_id)

        token = store.get(key)
        if token is not None:
            store.expire(key, self.session_timeout_seconds)
            logger.info("session_reused", resource_id=resource_id)
            return token

        info = self.directory.lookup(resource_id)
        if info is None:
            logger.error("session_metadata_missing", resource_id=resource_id)
            raise ResourceNotFoundError(
                f"no metadata for resource {resource_id!r}"
            ).with_context(resource_id=resource_id, operation="get_or_create_session")

        logger.info("session_login", resource_id=resource_id, address=info.address)
        token = self._login(info)
        store.set(key, token, ttl_seconds=self.session_timeout_seconds)
        logger.info("session_created", resource_id=resource_id, ttl=self.session_timeout_seconds)
        return token

    def refresh_ttl(self, resource_id: str) -> bool:
        """Extend an existing session's TTL. Never creates one; ``False`` if absent."""
        refreshed = self.registry.store.expire(
            self.registry.session_key(resource_id), self.session_timeout_seconds
        )
        if refreshed:
            logger.debug("session_refreshed", resource_id=resource_id)
        return refreshed


__all__ = ["LoginFn", "SessionManager", "issue_session_token"]
