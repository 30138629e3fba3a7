"""Lease data model.

Manifesto:
    Static metadata (where a terminal lives, how to log in) and dynamic
    lease state (who holds it, since when) have different owners and
    lifetimes. ``ResourceInfo`` is immutable and process-local; it is never
    written to the coordination store. ``LeaseRecord`` is the shared,
    mutable per-resource row stored as a hash.

Record format for the resource catalogue::

    address|port|username|password|id|group

Tags:
    spine-lease, models, dataclasses, parsing

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from spine_lease.core.errors import InvalidResourceRecordError

RECORD_SEPARATOR = "|"
RECORD_FIELD_COUNT = 6


class LeaseStatus(str, Enum):
    """Lease state of a resource."""

    AVAILABLE = "available"
    IN_USE = "in_use"


@dataclass(frozen=True)
class ResourceInfo:
    """Immutable connection metadata for one resource (terminal)."""

    id: str
    address: str
    port: int
    username: str
    password: str = field(repr=False)
    group: str = ""


@dataclass
class LeaseRecord:
    """Dynamic lease state of one resource, one hash per resource in the store."""

    resource_id: str
    status: LeaseStatus = LeaseStatus.AVAILABLE
    owner_id: str = ""
    last_activity: float = 0.0

    @property
    def is_available(self) -> bool:
        return self.status == LeaseStatus.AVAILABLE

    def to_hash(self) -> dict[str, str]:
        """Serialize to the flat string mapping stored in the hash."""
        return {
            "status": self.status.value,
            "owner_id": self.owner_id,
            "last_activity": format_timestamp(self.last_activity),
        }

    @classmethod
    def from_hash(cls, resource_id: str, fields: Mapping[str, str]) -> LeaseRecord:
        """Build a record from hash fields.

        Unknown status values and unparseable timestamps fall back to
        ``available`` / ``0.0`` (a zero timestamp makes an in-use record
        immediately eligible for reclaim).
        """
        try:
            status = LeaseStatus(fields.get("status", LeaseStatus.AVAILABLE.value))
        except ValueError:
            status = LeaseStatus.AVAILABLE
        try:
            last_activity = float(fields.get("last_activity", 0.0))
        except (TypeError, ValueError):
            last_activity = 0.0
        return cls(
            resource_id=resource_id,
            status=status,
            owner_id=fields.get("owner_id", "") or "",
            last_activity=last_activity,
        )


def format_timestamp(value: float) -> str:
    """Render a unix timestamp the way it is stored (millisecond precision)."""
    return f"{value:.3f}"


def record_id(raw: str, id_prefix: str = "") -> str | None:
    """Return the resource id a raw record declares, or ``None`` if it has none."""
    parts = raw.split(RECORD_SEPARATOR)
    if len(parts) != RECORD_FIELD_COUNT or not parts[4].strip():
        return None
    return f"{id_prefix}{parts[4].strip()}"


def parse_resource_record(
    raw: str,
    *,
    id_prefix: str = "",
    secret: str | None = None,
) -> ResourceInfo:
    """Parse one delimited record into a :class:`ResourceInfo`.

    Args:
        raw: ``address|port|username|password|id|group``
        id_prefix: Prepended to the id field to form the resource id.
        secret: When given, replaces the record's password.

    Raises:
        InvalidResourceRecordError: wrong field count, empty address/id,
            or a port outside 1-65535.
    """
    parts = [p.strip() for p in raw.strip().split(RECORD_SEPARATOR)]
    if len(parts) != RECORD_FIELD_COUNT:
        raise InvalidResourceRecordError(
            f"expected {RECORD_FIELD_COUNT} fields, got {len(parts)}"
        )

    address, port_text, username, password, raw_id, group = parts
    if not address:
        raise InvalidResourceRecordError("empty address")
    if not raw_id:
        raise InvalidResourceRecordError("empty resource id")
    try:
        port = int(port_text)
    except ValueError as e:
        raise InvalidResourceRecordError(f"invalid port {port_text!r}", cause=e) from e
    if not 0 < port < 65536:
        raise InvalidResourceRecordError(f"port out of range: {port}")

    return ResourceInfo(
        id=f"{id_prefix}{raw_id}",
        address=address,
        port=port,
        username=username,
        password=secret if secret is not None else password,
        group=group,
    )


__all__ = [
    "LeaseRecord",
    "LeaseStatus",
    "ResourceInfo",
    "format_timestamp",
    "parse_resource_record",
    "record_id",
]
