"""Idempotency Guard - at-most-once execution per idempotency key.

Lets many concurrent callers submit the same operation under one
client-supplied key: the operation runs once, duplicates get the cached
result, and callers racing an in-flight execution get a ConflictError
instead of blocking.

Example:
    coordinator = IdempotencyCoordinator(RedisStore.from_url("redis://"))

    execution = coordinator.execute(
        "order-42", lambda: charge_card(user_id, amount)
    )
    execution.value, execution.cached
"""

from .codec import DataclassCodec, JsonCodec, ResultCodec
from .config import CoordinatorConfig
from .coordinator import (
    AsyncIdempotencyCoordinator,
    Execution,
    IdempotencyCoordinator,
    Outcome,
)
from .decorator import idempotent
from .exceptions import (
    ConflictError,
    CorruptedCacheEntryError,
    IdempotencyError,
    PayloadMismatchError,
    SerializationError,
    StoreError,
    StoreUnavailableError,
)
from .key import fingerprint
from .stores import AsyncMemoryStore, AsyncStore, MemoryStore, Store

__version__ = "0.1.0"

__all__ = [
    "IdempotencyCoordinator",
    "AsyncIdempotencyCoordinator",
    "Execution",
    "Outcome",
    "CoordinatorConfig",
    "idempotent",
    "fingerprint",
    "ResultCodec",
    "JsonCodec",
    "DataclassCodec",
    "IdempotencyError",
    "ConflictError",
    "StoreError",
    "StoreUnavailableError",
    "SerializationError",
    "CorruptedCacheEntryError",
    "PayloadMismatchError",
    "Store",
    "AsyncStore",
    "MemoryStore",
    "AsyncMemoryStore",
]
