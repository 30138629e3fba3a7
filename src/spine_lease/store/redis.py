"""
Redis-backed coordination store.

Manifesto:
    A single connection shared between blocking ``BLPOP`` calls and ordinary
    commands can have its whole capacity consumed by allocators parked on an
    empty pool, at which point releases queue up behind them and the pool
    never refills. This adapter therefore holds two independent clients:

    - **blocking handle:** used for ``dequeue`` (``BLPOP``) and nothing else
    - **release handle:** every mutation and read (``HSET``, ``RPUSH``, Lua CAS,
      ``SCAN``, session strings)

    Both may point at the same server; ``release_url`` defaults to ``url``.

Architecture:
    ::

        pool           LIST   RPUSH on release, BLPOP on allocate (FIFO)
        status:{id}    HASH   status / owner_id / last_activity
        session:{id}   STRING token, EX = session timeout

Guardrails:
    ❌ DON'T: Issue BLPOP on the release handle
    ✅ DO: Keep the blocking handle's socket timeout unset so long waits
       are bounded by the BLPOP timeout only

Tags:
    spine-lease, redis, coordination, blpop, lua, two-connections

Doc-Types:
    api-reference, architecture
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import redis

from spine_lease.core.errors import StoreUnavailableError
from spine_lease.core.logging import get_logger

logger = get_logger(__name__)

# KEYS[1] = hash key; ARGV[1] = field, ARGV[2] = expected, ARGV[3..] = field/value pairs
_COMPARE_AND_SET = """
if redis.call('HGET', KEYS[1], ARGV[1]) ~= ARGV[2] then
    return 0
end
for i = 3, #ARGV, 2 do
    redis.call('HSET', KEYS[1], ARGV[i], ARGV[i + 1])
end
return 1
"""

SCAN_BATCH_SIZE = 500


@contextmanager
def _store_errors(operation: str, key: str | None = None) -> Iterator[None]:
    """Translate redis-py failures into :class:`StoreUnavailableError`."""
    try:
        yield
    except redis.RedisError as e:
        raise StoreUnavailableError(
            f"coordination store failed during {operation}: {e}", cause=e
        ).with_context(operation=operation, key=key) from e


class RedisCoordinationStore:
    """Coordination store over two Redis connections.

    Example:
        store = RedisCoordinationStore(
            "redis://redis:6379/0",
            release_url="redis://redis:6379/0",
        )
        store.enqueue("terminal:pool", "T1")
        store.dequeue("terminal:pool", timeout=5.0)
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        release_url: str | None = None,
        socket_timeout: float | None = 5.0,
    ):
        """Connect both handles.

        Args:
            url: Redis URL for the blocking handle.
            release_url: Redis URL for the non-blocking handle (defaults to ``url``).
            socket_timeout: Socket timeout for the non-blocking handle.
        """
        self._blocking: Any = redis.from_url(url, decode_responses=True, socket_timeout=None)
        self._client: Any = redis.from_url(
            release_url or url,
            decode_responses=True,
            socket_timeout=socket_timeout,
        )
        self._compare_and_set = self._client.register_script(_COMPARE_AND_SET)
        logger.debug("redis_store_connected", separate_release_url=release_url is not None)

    # -- queues -----------------------------------------------------------

    def dequeue(self, queue_key: str, timeout: float) -> str | None:
        if timeout <= 0:
            # BLPOP treats 0 as "block forever"
            raise ValueError("dequeue timeout must be positive")
        with _store_errors("dequeue", queue_key):
            item = self._blocking.blpop([queue_key], timeout=timeout)
        if item is None:
            return None
        _, member = item
        return member

    def enqueue(self, queue_key: str, member: str) -> None:
        with _store_errors("enqueue", queue_key):
            self._client.rpush(queue_key, member)

    def queue_length(self, queue_key: str) -> int:
        with _store_errors("queue_length", queue_key):
            return int(self._client.llen(queue_key))

    # -- hashes -----------------------------------------------------------

    def hash_get(self, key: str) -> dict[str, str]:
        with _store_errors("hash_get", key):
            return dict(self._client.hgetall(key) or {})

    def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        with _store_errors("hash_set", key):
            self._client.hset(key, mapping=dict(mapping))

    def hash_set_if(
        self,
        key: str,
        field: str,
        expected: str,
        mapping: Mapping[str, str],
    ) -> bool:
        args: list[str] = [field, expected]
        for name, value in mapping.items():
            args.extend((name, value))
        with _store_errors("hash_set_if", key):
            return bool(self._compare_and_set(keys=[key], args=args))

    # -- keys -------------------------------------------------------------

    def exists(self, key: str) -> bool:
        with _store_errors("exists", key):
            return bool(self._client.exists(key))

    def expire(self, key: str, ttl_seconds: int) -> bool:
        with _store_errors("expire", key):
            return bool(self._client.expire(key, ttl_seconds))

    def scan_keys(self, pattern: str) -> Iterator[str]:
        # SCAN, not KEYS
        with _store_errors("scan_keys", pattern):
            yield from self._client.scan_iter(match=pattern, count=SCAN_BATCH_SIZE)

    # -- strings ----------------------------------------------------------

    def get(self, key: str) -> str | None:
        with _store_errors("get", key):
            return self._client.get(key)

    def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        with _store_errors("set", key):
            if ttl_seconds:
                self._client.set(key, value, ex=ttl_seconds)
            else:
                self._client.set(key, value)

    def close(self) -> None:
        """Close both connection pools."""
        self._blocking.close()
        self._client.close()


__all__ = ["RedisCoordinationStore"]
