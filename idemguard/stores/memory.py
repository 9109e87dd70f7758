"""In-memory store implementation."""

import threading
import time

from ..utils import ensure_bytes
from .base import AsyncStore, Store


class MemoryStore(Store):
    """Thread-safe in-memory store for idempotency slots.

    Note: This store does NOT persist across processes or restarts.
    Use FileStore or RedisStore for multi-process scenarios.
    """

    def __init__(self) -> None:
        self._values: dict[str, tuple[bytes, float | None]] = {}
        self._global_lock = threading.Lock()

    def _live(self, key: str) -> bytes | None:
        """Return the value for key, dropping it if expired. Caller holds lock."""
        if key not in self._values:
            return None

        value, expires_at = self._values[key]

        # Check if expired
        if expires_at is not None and time.time() >= expires_at:
            del self._values[key]
            return None

        return value

    def get(self, key: str) -> bytes | None:
        """Retrieve a value, checking TTL expiration."""
        with self._global_lock:
            return self._live(key)

    def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store a value with optional TTL."""
        with self._global_lock:
            expires_at = None
            if ttl is not None:
                expires_at = time.time() + ttl

            self._values[key] = (ensure_bytes(value), expires_at)

    def set_if_absent(self, key: str, value: bytes, ttl: float) -> bool:
        """Store a value only if no live value exists for key."""
        with self._global_lock:
            if self._live(key) is not None:
                return False

            self._values[key] = (ensure_bytes(value), time.time() + ttl)
            return True

    def delete(self, key: str) -> None:
        """Delete a value."""
        with self._global_lock:
            self._values.pop(key, None)

    def keys(self) -> list[str]:
        """List live keys (useful for testing)."""
        with self._global_lock:
            return [key for key in list(self._values) if self._live(key) is not None]

    def clear(self) -> None:
        """Clear all values (useful for testing)."""
        with self._global_lock:
            self._values.clear()


class AsyncMemoryStore(AsyncStore):
    """Asyncio facade over a MemoryStore.

    None of the wrapped calls block, so they run inline on the event loop.

    Args:
        store: Backing MemoryStore (a new one by default)
    """

    def __init__(self, store: MemoryStore | None = None) -> None:
        self.store = store or MemoryStore()

    async def get(self, key: str) -> bytes | None:
        return self.store.get(key)

    async def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        self.store.set(key, value, ttl=ttl)

    async def set_if_absent(self, key: str, value: bytes, ttl: float) -> bool:
        return self.store.set_if_absent(key, value, ttl)

    async def delete(self, key: str) -> None:
        self.store.delete(key)
