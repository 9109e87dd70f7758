"""Base store interfaces for idempotency slots."""

from abc import ABC, abstractmethod


class Store(ABC):
    """Abstract base class for idempotency stores.

    Stores are plain key-value backends with TTLs. They are responsible for:
    - Persisting opaque byte values under slot keys
    - Providing an atomic set-if-absent primitive
    - Managing TTL/expiration

    Backend failures must be raised as StoreError.
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Retrieve a value by slot key.

        Args:
            key: The slot key

        Returns:
            Stored bytes if present and not expired, None otherwise
        """
        pass

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store a value, replacing any existing one.

        Args:
            key: The slot key
            value: Bytes to store
            ttl: Time-to-live in seconds (None = no expiration)
        """
        pass

    @abstractmethod
    def set_if_absent(self, key: str, value: bytes, ttl: float) -> bool:
        """Atomically store a value only if the key holds none.

        Must be a single atomic step, not a get followed by a set.

        Args:
            key: The slot key
            value: Bytes to store
            ttl: Time-to-live in seconds

        Returns:
            True if this call created the entry, False otherwise
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a value. Deleting a missing key is not an error.

        Args:
            key: The slot key
        """
        pass


class AsyncStore(ABC):
    """Asyncio counterpart of Store with the same contract."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        pass

    @abstractmethod
    async def set_if_absent(self, key: str, value: bytes, ttl: float) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass
