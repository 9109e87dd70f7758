"""Redis-based store implementation with atomic operations."""

from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from ..exceptions import StoreError
from ..utils import ensure_bytes, to_milliseconds
from .base import AsyncStore, Store

if TYPE_CHECKING:
    from redis import Redis
    from redis.asyncio import Redis as AsyncRedis


class RedisStore(Store):
    """Redis-based store for idempotency slots.

    Uses SET NX PX for the conditional set, so lock acquisition is a single
    atomic round-trip. Safe for multi-process and multi-server scenarios.

    Args:
        client: Redis client instance
    """

    def __init__(self, client: "Redis") -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: object) -> "RedisStore":
        """Create a store from a redis:// URL."""
        from redis import Redis

        return cls(Redis.from_url(url, **kwargs))

    def get(self, key: str) -> bytes | None:
        """Retrieve a value from Redis."""
        try:
            data = self.client.get(key)
        except RedisError as e:
            raise StoreError("get", key, str(e)) from e

        if data is None:
            return None
        return ensure_bytes(data)

    def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store a value in Redis with optional TTL."""
        try:
            if ttl is not None:
                self.client.set(key, value, px=to_milliseconds(ttl))
            else:
                self.client.set(key, value)
        except RedisError as e:
            raise StoreError("set", key, str(e)) from e

    def set_if_absent(self, key: str, value: bytes, ttl: float) -> bool:
        """Atomically create key with SET NX PX."""
        try:
            acquired = self.client.set(key, value, nx=True, px=to_milliseconds(ttl))
        except RedisError as e:
            raise StoreError("set_if_absent", key, str(e)) from e

        return bool(acquired)

    def delete(self, key: str) -> None:
        """Delete a value from Redis."""
        try:
            self.client.delete(key)
        except RedisError as e:
            raise StoreError("delete", key, str(e)) from e


class AsyncRedisStore(AsyncStore):
    """redis.asyncio counterpart of RedisStore.

    Args:
        client: redis.asyncio client instance
    """

    def __init__(self, client: "AsyncRedis") -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: object) -> "AsyncRedisStore":
        """Create a store from a redis:// URL."""
        from redis.asyncio import Redis as AsyncRedis

        return cls(AsyncRedis.from_url(url, **kwargs))

    async def get(self, key: str) -> bytes | None:
        try:
            data = await self.client.get(key)
        except RedisError as e:
            raise StoreError("get", key, str(e)) from e

        if data is None:
            return None
        return ensure_bytes(data)

    async def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        try:
            if ttl is not None:
                await self.client.set(key, value, px=to_milliseconds(ttl))
            else:
                await self.client.set(key, value)
        except RedisError as e:
            raise StoreError("set", key, str(e)) from e

    async def set_if_absent(self, key: str, value: bytes, ttl: float) -> bool:
        try:
            acquired = await self.client.set(
                key, value, nx=True, px=to_milliseconds(ttl)
            )
        except RedisError as e:
            raise StoreError("set_if_absent", key, str(e)) from e

        return bool(acquired)

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as e:
            raise StoreError("delete", key, str(e)) from e
