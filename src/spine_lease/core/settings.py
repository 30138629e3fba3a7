"""
Centralized settings for spine-lease.

Manifesto:
    Every replica must agree on key layout, timeouts and the resource
    catalogue, while each replica has its own identity. One validated,
    cached settings object reads all of it from ``LEASE_*`` environment
    variables and ``.env`` files; the identity comes from ``POD_NAME``
    (Kubernetes downward API) when present.

Examples:
    >>> settings = LeaseSettings(resource_records=["10.0.0.5|22|u|p|1|north"])
    >>> settings.session_timeout_seconds
    300
    >>> settings.release_url == settings.redis_url
    True

Tags:
    spine-lease, configuration, settings, pydantic, environment

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
import socket
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_identity() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class LeaseSettings(BaseSettings):
    """spine-lease configuration.

    Fields
    ──────
    redis_url               : Store URL for the blocking (dequeue) handle
    redis_release_url       : Store URL for the non-blocking handle (defaults to redis_url)
    key_prefix              : Namespace for status/session/pool keys
    resource_records        : ``address|port|username|password|id|group`` records
    resource_records_file   : Optional file with one record per line
    pod_name                : This process's owner identity
    """

    model_config = SettingsConfigDict(
        env_prefix="LEASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Coordination store ───────────────────────────────────────
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_release_url: str | None = Field(
        default=None,
        description="Separate connection for releases so blocked dequeues cannot starve them",
    )
    redis_socket_timeout: float = Field(default=5.0, gt=0)
    key_prefix: str = Field(default="terminal", min_length=1)

    # ── Resource catalogue ───────────────────────────────────────
    resource_records: list[str] = Field(default_factory=list)
    resource_records_file: Path | None = None
    resource_id_prefix: str = Field(default="")
    resource_secret: str | None = Field(
        default=None,
        description="Shared password overriding the password field of every record",
    )
    initial_resource_count: int = Field(default=0, ge=0, description="0 = every configured record")
    initialize_on_startup: bool = Field(default=True)

    # ── Timeouts ─────────────────────────────────────────────────
    session_timeout_seconds: int = Field(default=300, gt=0)
    orphaned_timeout_seconds: int = Field(default=30, gt=0)
    reclaim_interval_seconds: float = Field(default=15.0, gt=0)
    allocate_timeout_seconds: float = Field(default=5.0, ge=0)

    # ── Identity ─────────────────────────────────────────────────
    pod_name: str = Field(
        default_factory=_default_identity,
        validation_alias=AliasChoices("POD_NAME", "LEASE_POD_NAME", "pod_name"),
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")

    @property
    def release_url(self) -> str:
        return self.redis_release_url or self.redis_url

    def load_resource_records(self) -> list[str]:
        """Return inline records followed by those from ``resource_records_file``.

        Blank lines and ``#`` comments in the file are ignored.
        """
        records = [r.strip() for r in self.resource_records if r.strip()]
        if self.resource_records_file is not None:
            text = self.resource_records_file.read_text(encoding="utf-8")
            for line in text.splitlines():
                line = line.strip()
                if line and not line.startswith("#"):
                    records.append(line)
        return records


_settings_cache: dict[str, LeaseSettings] = {}


def get_settings(*, _force_reload: bool = False) -> LeaseSettings:
    """Load, validate, and cache a :class:`LeaseSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = LeaseSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["LeaseSettings", "clear_settings_cache", "get_settings"]
