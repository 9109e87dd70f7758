"""Exceptions for idempotency guard."""


class IdempotencyError(Exception):
    """Base exception for idempotency-related errors."""


class ConflictError(IdempotencyError):
    """Raise when another execution for the same key is still in flight."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            f"A request with idempotency key '{key}' is currently being "
            "processed. Please try again later."
        )


class StoreError(IdempotencyError):
    """Raise when a store backend cannot complete an operation."""

    def __init__(self, operation: str, slot: str, reason: str = "") -> None:
        self.operation = operation
        self.slot = slot
        self.reason = reason
        message = f"Store {operation} failed for '{slot}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StoreUnavailableError(IdempotencyError):
    """Raise when the coordination store cannot be reached.

    No operation was invoked and nothing was written.
    """

    def __init__(self, key: str, phase: str) -> None:
        self.key = key
        self.phase = phase
        super().__init__(
            f"Idempotency store unavailable during {phase} for key: {key}"
        )


class SerializationError(IdempotencyError):
    """Raise when a result cannot be encoded or decoded."""

    def __init__(self, value: object, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Cannot serialize result: {reason}")


class CorruptedCacheEntryError(IdempotencyError):
    """Raise when a cached result cannot be decoded."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Cached result for key '{key}' could not be decoded")


class PayloadMismatchError(IdempotencyError):
    """Raise when a key is reused with a different payload in strict mode."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            f"Idempotency key '{key}' was already used with a different payload"
        )
