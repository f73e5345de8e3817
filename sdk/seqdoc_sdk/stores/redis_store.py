"""
Redis key-value store for sequence counters.

Besides get/set this store offers a per-key advisory lock (a Redis lock
with expiry), which the allocator uses to serialise counter updates across
processes sharing the same Redis.

Invariants:
    - Keys are namespaced with key_prefix
    - Locks expire after lock_timeout seconds even if the holder dies
    - Redis failures are raised as StoreError subclasses
"""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .base import StoreConnectionError, StoreError, StoreTimeoutError

logger = logging.getLogger(__name__)


def _translate(operation: str, error: RedisError) -> StoreError:
    if isinstance(error, RedisTimeoutError):
        return StoreTimeoutError(f"Redis {operation} timed out: {error}")
    if isinstance(error, RedisConnectionError):
        return StoreConnectionError(f"Redis {operation} failed: {error}")
    return StoreError(f"Redis {operation} failed: {error}")


class RedisKeyValueStore:
    """Redis implementation of LockingKeyValueStore.

    Example:
        >>> kv = RedisKeyValueStore("redis://localhost:6379/0")
        >>> await kv.init()
        >>> async with kv.lock("billing_count_customerid_1"):
        ...     await kv.set("billing_count_customerid_1", 1)
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        key_prefix: str = "seqdoc:",
        lock_timeout: float = 10.0,
        lock_blocking_timeout: float | None = 30.0,
        client: Any = None,
    ) -> None:
        """Initialize the store.

        Args:
            redis_url: Redis connection URL
            key_prefix: Prefix for every key written
            lock_timeout: Seconds after which a held lock expires
            lock_blocking_timeout: Seconds to wait for a lock (None waits forever)
            client: Existing redis.asyncio client to use (not closed by close())
        """
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._lock_timeout = lock_timeout
        self._lock_blocking_timeout = lock_blocking_timeout
        self._owns_client = client is None
        self._redis = client or aioredis.from_url(redis_url, decode_responses=True)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def init(self) -> None:
        """Verify Redis is reachable."""
        try:
            await self._redis.ping()
        except RedisError as e:
            raise _translate("ping", e) from e
        logger.info("Redis key-value store ready", extra={"redis_url": self._redis_url})

    async def get(self, key: str) -> str | None:
        """Get a value, None if absent."""
        try:
            value = await self._redis.get(self._key(key))
        except RedisError as e:
            raise _translate("get", e) from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: Any) -> None:
        """Set a value."""
        try:
            await self._redis.set(self._key(key), str(value))
        except RedisError as e:
            raise _translate("set", e) from e

    def lock(self, key: str) -> Any:
        """Advisory lock guarding the counter under key."""
        return self._redis.lock(
            f"{self._key_prefix}lock:{key}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_blocking_timeout,
        )

    async def close(self) -> None:
        """Close the connection pool if we created it."""
        if self._owns_client:
            await self._redis.aclose()
