"""
Structured logging for spine-lease.

Every component obtains its logger through :func:`get_logger` and emits
event-style keys (``resource_allocated``, ``orphan_reclaimed``) with the
resource id and owner as fields, so lease transitions can be reconstructed
from a log aggregator across all replicas.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="spine-lease")
            ↓
        structlog processor chain:
          1. merge_contextvars        (pod_name, request ids, ...)
          2. TimeStamper (iso, utc)
          3. add_log_level / add_logger_name
          4. redact_secrets           (password, token, secret → "***")
          5. add_service              (service.name)
          6. ecs_field_names          (JSON only: @timestamp, log.level)
          7. JSONRenderer             (or ConsoleRenderer for a terminal)
            ↓
        stdlib logging handler (shared with redis-py's own loggers)

Examples:
    >>> from spine_lease.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True)
    >>> logger = get_logger(__name__)
    >>> logger.info("resource_allocated", resource_id="T1", owner_id="pod-a")

Guardrails:
    ❌ DON'T: Pass ``ResourceInfo`` objects or session tokens as log fields
    ✅ DO: Log resource ids and owner ids only (secret-looking keys are masked
       anyway, as a last line)

Tags:
    logging, structlog, observability, ecs, json-logging, spine-lease

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from spine_lease.core.settings import LeaseSettings

SECRET_KEYS = frozenset({"password", "secret", "token", "session_token"})
_REDACTED = "***"

_service_name = "spine-lease"


def _redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = _REDACTED
    return event_dict


def _add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service_name)
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename structlog's keys to their ECS equivalents."""
    for ours, ecs in (("timestamp", "@timestamp"), ("level", "log.level")):
        if ours in event_dict:
            event_dict[ecs] = event_dict.pop(ours)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "spine-lease",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for this process.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, coloured console output when
            False, JSON unless stdout is a terminal when None
        service: Value of the ``service.name`` field
        add_timestamp: Stamp each event with an ISO-8601 UTC time
    """
    global _service_name
    _service_name = service

    numeric_level = getattr(logging, level.upper())
    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [structlog.contextvars.merge_contextvars]
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors += [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _redact_secrets,
        _add_service,
    ]
    if json_format:
        processors += [
            _ecs_field_names,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # No-op when the root logger already has handlers (e.g. under pytest)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def configure_from_settings(settings: LeaseSettings) -> None:
    """Apply ``log_level`` / ``log_format`` from :class:`LeaseSettings`."""
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, normally ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every later event logged from this thread.

    Example:
        bind_context(pod_name="lease-7f9c")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Example:
        with LogContext(owner_id="pod-a"):
            logger.info("shutdown_release_started")
    """

    def __init__(self, **kwargs: Any):
        self._fields = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        unbind_context(*self._fields)


__all__ = [
    "LogContext",
    "SECRET_KEYS",
    "bind_context",
    "clear_context",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
