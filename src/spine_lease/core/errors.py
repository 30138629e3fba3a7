"""
Structured error types for spine-lease.

Every failure the lease manager surfaces to a caller is a :class:`LeaseError`
carrying a category, an explicit retry flag and structured context. Callers
decide whether to retry, alert or surface backpressure from those fields
instead of string-matching messages.

Manifesto:
    - **Typed hierarchy:** one subclass per failure mode the caller must
      distinguish (store down vs. metadata missing vs. bad input)
    - **Explicit retry semantics:** store outages are retryable, broken
      configuration is not
    - **Error chaining:** the transport exception is kept as ``cause``

Architecture:
    ::

        LeaseError (category, retryable, retry_after, context, cause)
        ├── StoreUnavailableError      STORE     retryable
        ├── ResourceNotFoundError      METADATA
        └── ConfigError                CONFIG
            └── InvalidResourceRecordError

    Pool exhaustion is not an error: ``allocate()`` returns ``None`` on
    timeout.

Examples:
    >>> err = StoreUnavailableError("redis down", cause=ConnectionError("refused"))
    >>> err.retryable
    True
    >>> err.with_context(resource_id="T1").context.resource_id
    'T1'

Tags:
    error-handling, exception-hierarchy, retry-logic, spine-lease

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and alert routing."""

    STORE = "STORE"            # Coordination store transport failures
    METADATA = "METADATA"      # Lease exists but static info cannot be resolved
    CONFIG = "CONFIG"          # Malformed records, invalid arguments
    INTERNAL = "INTERNAL"      # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to a :class:`LeaseError`.

    Only non-``None`` fields are emitted by :meth:`to_dict`, so the dict can
    be passed straight into a structlog call.
    """

    resource_id: str | None = None
    owner_id: str | None = None
    operation: str | None = None
    key: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["resource_id", "owner_id", "operation", "key"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LeaseError(Exception):
    """Base exception for all spine-lease errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can be
    overridden per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LeaseError:
        """Add context to this error (fluent API).

        Usage:
            raise ResourceNotFoundError("no metadata").with_context(resource_id="T7")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreUnavailableError(LeaseError):
    """The coordination store could not be reached or rejected a command.

    Allocation and release always propagate this; only the shutdown drain
    swallows it.
    """

    default_category = ErrorCategory.STORE
    default_retryable = True


# =============================================================================
# METADATA ERRORS
# =============================================================================


class ResourceNotFoundError(LeaseError):
    """A leased resource id has no resolvable static metadata.

    Raised by ``allocate`` after the lease record was already flipped to
    in-use. The resource is intentionally left in-use so the orphan
    reclaimer recovers it; callers should alert rather than retry blindly.
    """

    default_category = ErrorCategory.METADATA
    default_retryable = False


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(LeaseError):
    """Invalid configuration or operation argument."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidResourceRecordError(ConfigError):
    """A delimited resource record could not be parsed.

    Loaders catch this, log the record (without its password) and skip it.
    """


__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidResourceRecordError",
    "LeaseError",
    "ResourceNotFoundError",
    "StoreUnavailableError",
]
