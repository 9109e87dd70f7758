"""Idempotent execution coordinator.

The coordinator runs an operation at most once per idempotency key and lock
window. All cross-caller coordination goes through the store's atomic
set-if-absent; the coordinator keeps no state of its own between calls.

Per call:

    check cache ─ hit ──────────────────────────────► cached result
        │
       miss
        │
    set-if-absent lock ─ taken ─────────────────────► ConflictError
        │
     acquired
        │
    run operation ─ raises ─► release lock ─────────► operation's error
        │
    cache result (best effort) ─► release lock ─────► fresh result
"""

import enum
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from .codec import JsonCodec, ResultCodec
from .config import CoordinatorConfig
from .exceptions import (
    ConflictError,
    CorruptedCacheEntryError,
    PayloadMismatchError,
    SerializationError,
    StoreError,
    StoreUnavailableError,
)
from .stores.base import AsyncStore, Store

T = TypeVar("T")

log = structlog.get_logger(__name__)

LOCK_MARKER = b"true"

_MISS = object()


class Outcome(enum.Enum):
    """How an execution's value was obtained."""

    FRESH = "fresh"
    CACHED = "cached"


@dataclass(frozen=True)
class Execution(Generic[T]):
    """Result of a coordinated call.

    Attributes:
        value: The operation's result, fresh or decoded from the cache
        cached: True if the operation was not invoked by this call
    """

    value: T
    cached: bool

    @property
    def outcome(self) -> Outcome:
        return Outcome.CACHED if self.cached else Outcome.FRESH


class _CoordinatorBase(Generic[T]):
    """Store-independent parts shared by the sync and async coordinators."""

    def __init__(
        self,
        config: CoordinatorConfig | None = None,
        codec: ResultCodec[T] | None = None,
    ) -> None:
        self.config = config or CoordinatorConfig()
        self.codec: ResultCodec[Any] = codec or JsonCodec()

    @staticmethod
    def _validate_key(key: str) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError("idempotency key must be a non-empty string")

    def _verifies(self, fingerprint: str | None) -> bool:
        return self.config.verify_payload and fingerprint is not None

    def _check_fingerprint(
        self, key: str, stored: bytes | None, fingerprint: str | None
    ) -> None:
        # Results cached before strict mode was enabled carry no fingerprint
        if not self._verifies(fingerprint) or stored is None:
            return
        if stored.decode("utf-8", "replace") != fingerprint:
            raise PayloadMismatchError(key)

    def _decode_cached(self, key: str, data: bytes, logger: Any) -> Any:
        """Decode a cached result, or return _MISS when corrupt and allowed."""
        try:
            return self.codec.decode(data)
        except SerializationError as e:
            if self.config.on_corrupt == "raise":
                logger.error("corrupted_cache_entry", reason=e.reason)
                raise CorruptedCacheEntryError(key) from e

            logger.warning(
                "corrupted_cache_entry", reason=e.reason, action="re-execute"
            )
            return _MISS

    def _store_unavailable(
        self, key: str, phase: str, error: StoreError, logger: Any
    ) -> StoreUnavailableError:
        logger.error("store_unavailable", phase=phase, error=str(error))
        return StoreUnavailableError(key, phase)


class IdempotencyCoordinator(_CoordinatorBase[T]):
    """Runs operations at most once per idempotency key.

    Args:
        store: Shared key-value store used for results and locks
        config: Namespace, TTLs and policies (defaults if omitted)
        codec: Result codec (JsonCodec if omitted)

    Example:
        coordinator = IdempotencyCoordinator(RedisStore.from_url(url))
        execution = coordinator.execute(
            request.idempotency_key,
            lambda: service.process_payment(request.amount, request.currency),
        )
        execution.value, execution.cached
    """

    def __init__(
        self,
        store: Store,
        config: CoordinatorConfig | None = None,
        codec: ResultCodec[T] | None = None,
    ) -> None:
        super().__init__(config=config, codec=codec)
        self.store = store

    def execute(
        self,
        key: str,
        operation: Callable[[], T],
        *,
        fingerprint: str | None = None,
    ) -> Execution[T]:
        """Run operation once for key, or return the cached result.

        Args:
            key: Caller-supplied idempotency key
            operation: Zero-argument callable performing the side effects
            fingerprint: Payload fingerprint, checked against the cached
                one when config.verify_payload is set

        Returns:
            Execution with the value and whether it came from the cache

        Raises:
            ConflictError: Another call with this key is in flight
            StoreUnavailableError: Store failed before the operation ran
            CorruptedCacheEntryError: Cached result is undecodable
            PayloadMismatchError: Strict mode and the payload differs
            Exception: Whatever the operation raised, unchanged
        """
        self._validate_key(key)
        config = self.config
        logger = log.bind(idempotency_key=key)
        logger.info("idempotency_check")

        try:
            cached = self.store.get(config.result_slot(key))
            stored_fingerprint = None
            if cached is not None and self._verifies(fingerprint):
                stored_fingerprint = self.store.get(config.fingerprint_slot(key))
        except StoreError as e:
            raise self._store_unavailable(key, "check_cache", e, logger) from e

        if cached is not None:
            self._check_fingerprint(key, stored_fingerprint, fingerprint)
            value = self._decode_cached(key, cached, logger)
            if value is not _MISS:
                logger.info("cached_result_found")
                return Execution(value, cached=True)

        try:
            acquired = self.store.set_if_absent(
                config.lock_slot(key), LOCK_MARKER, config.lock_ttl
            )
        except StoreError as e:
            raise self._store_unavailable(key, "acquire_lock", e, logger) from e

        if not acquired:
            logger.warning("duplicate_request_in_flight")
            raise ConflictError(key)

        logger.info("processing_lock_acquired", lock_ttl=config.lock_ttl)

        try:
            value = operation()
        except Exception:
            logger.exception("operation_failed")
            raise
        else:
            self._cache_result(key, value, fingerprint, logger)
            return Execution(value, cached=False)
        finally:
            # Always release lock
            self._release_lock(key, logger)

    def _cache_result(
        self, key: str, value: T, fingerprint: str | None, logger: Any
    ) -> None:
        """Write the result; failures are logged, the side effects stand."""
        config = self.config
        try:
            data = self.codec.encode(value)
            if self._verifies(fingerprint):
                self.store.set(
                    config.fingerprint_slot(key),
                    fingerprint.encode("utf-8"),  # type: ignore[union-attr]
                    ttl=config.result_ttl,
                )
            self.store.set(config.result_slot(key), data, ttl=config.result_ttl)
        except (SerializationError, StoreError) as e:
            logger.error("result_cache_failed", error=str(e))
            return

        logger.info("result_cached", result_ttl=config.result_ttl)

    def _release_lock(self, key: str, logger: Any) -> None:
        """Delete the lock; on failure its TTL frees it eventually."""
        try:
            self.store.delete(self.config.lock_slot(key))
        except StoreError as e:
            logger.warning("lock_release_failed", error=str(e))
            return

        logger.info("processing_lock_released")


class AsyncIdempotencyCoordinator(_CoordinatorBase[T]):
    """Asyncio counterpart of IdempotencyCoordinator.

    Same algorithm and errors; every store call and the operation are awaited.
    """

    def __init__(
        self,
        store: AsyncStore,
        config: CoordinatorConfig | None = None,
        codec: ResultCodec[T] | None = None,
    ) -> None:
        super().__init__(config=config, codec=codec)
        self.store = store

    async def execute(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
        *,
        fingerprint: str | None = None,
    ) -> Execution[T]:
        """Run operation once for key, or return the cached result.

        See IdempotencyCoordinator.execute.
        """
        self._validate_key(key)
        config = self.config
        logger = log.bind(idempotency_key=key)
        logger.info("idempotency_check")

        try:
            cached = await self.store.get(config.result_slot(key))
            stored_fingerprint = None
            if cached is not None and self._verifies(fingerprint):
                stored_fingerprint = await self.store.get(
                    config.fingerprint_slot(key)
                )
        except StoreError as e:
            raise self._store_unavailable(key, "check_cache", e, logger) from e

        if cached is not None:
            self._check_fingerprint(key, stored_fingerprint, fingerprint)
            value = self._decode_cached(key, cached, logger)
            if value is not _MISS:
                logger.info("cached_result_found")
                return Execution(value, cached=True)

        try:
            acquired = await self.store.set_if_absent(
                config.lock_slot(key), LOCK_MARKER, config.lock_ttl
            )
        except StoreError as e:
            raise self._store_unavailable(key, "acquire_lock", e, logger) from e

        if not acquired:
            logger.warning("duplicate_request_in_flight")
            raise ConflictError(key)

        logger.info("processing_lock_acquired", lock_ttl=config.lock_ttl)

        try:
            value = await operation()
        except Exception:
            logger.exception("operation_failed")
            raise
        else:
            await self._cache_result(key, value, fingerprint, logger)
            return Execution(value, cached=False)
        finally:
            await self._release_lock(key, logger)

    async def _cache_result(
        self, key: str, value: T, fingerprint: str | None, logger: Any
    ) -> None:
        config = self.config
        try:
            data = self.codec.encode(value)
            if self._verifies(fingerprint):
                await self.store.set(
                    config.fingerprint_slot(key),
                    fingerprint.encode("utf-8"),  # type: ignore[union-attr]
                    ttl=config.result_ttl,
                )
            await self.store.set(config.result_slot(key), data, ttl=config.result_ttl)
        except (SerializationError, StoreError) as e:
            logger.error("result_cache_failed", error=str(e))
            return

        logger.info("result_cached", result_ttl=config.result_ttl)

    async def _release_lock(self, key: str, logger: Any) -> None:
        try:
            await self.store.delete(self.config.lock_slot(key))
        except StoreError as e:
            logger.warning("lock_release_failed", error=str(e))
            return

        logger.info("processing_lock_released")
