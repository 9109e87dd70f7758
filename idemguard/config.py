"""Coordinator configuration and slot naming."""

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_NAMESPACE = "idempotency"
DEFAULT_RESULT_TTL = 24 * 60 * 60.0
DEFAULT_LOCK_TTL = 5 * 60.0

PROCESSING_SUFFIX = ":processing"
FINGERPRINT_SUFFIX = ":fingerprint"

ON_CORRUPT_CHOICES = ("raise", "miss")

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CoordinatorConfig:
    """Settings for an idempotency coordinator.

    Attributes:
        namespace: Prefix for every slot the coordinator writes
        result_ttl: Seconds a cached result is kept
        lock_ttl: Seconds a processing lock survives a crashed holder
        on_corrupt: What to do with an undecodable cached result:
            - "raise": Raise CorruptedCacheEntryError (default)
            - "miss": Treat as a cache miss and execute again
        verify_payload: Reject reuse of a key with a different payload
            fingerprint instead of returning the cached result
    """

    namespace: str = DEFAULT_NAMESPACE
    result_ttl: float = DEFAULT_RESULT_TTL
    lock_ttl: float = DEFAULT_LOCK_TTL
    on_corrupt: str = "raise"
    verify_payload: bool = False

    def __post_init__(self) -> None:
        if not self.namespace:
            raise ValueError("namespace must not be empty")

        if not (math.isfinite(self.result_ttl) and math.isfinite(self.lock_ttl)):
            raise ValueError(
                f"TTLs must be finite, got result_ttl={self.result_ttl}, "
                f"lock_ttl={self.lock_ttl}"
            )

        if self.result_ttl <= 0 or self.lock_ttl <= 0:
            raise ValueError(
                f"TTLs must be positive, got result_ttl={self.result_ttl}, "
                f"lock_ttl={self.lock_ttl}"
            )

        # Results must outlive the lock that produced them
        if self.lock_ttl >= self.result_ttl:
            raise ValueError(
                f"lock_ttl ({self.lock_ttl}) must be shorter than "
                f"result_ttl ({self.result_ttl})"
            )

        if self.on_corrupt not in ON_CORRUPT_CHOICES:
            raise ValueError(
                f"on_corrupt must be 'raise' or 'miss', got '{self.on_corrupt}'"
            )

    def result_slot(self, key: str) -> str:
        """Store key holding the cached result."""
        return f"{self.namespace}:{key}"

    def lock_slot(self, key: str) -> str:
        """Store key holding the processing lock."""
        return f"{self.namespace}:{key}{PROCESSING_SUFFIX}"

    def fingerprint_slot(self, key: str) -> str:
        """Store key holding the payload fingerprint."""
        return f"{self.namespace}:{key}{FINGERPRINT_SUFFIX}"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        prefix: str = "IDEMGUARD_",
    ) -> "CoordinatorConfig":
        """Build a config from environment variables.

        Recognized names (after the prefix): NAMESPACE, RESULT_TTL,
        LOCK_TTL, ON_CORRUPT, VERIFY_PAYLOAD. Missing names keep defaults.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}

        if f"{prefix}NAMESPACE" in env:
            kwargs["namespace"] = env[f"{prefix}NAMESPACE"]
        if f"{prefix}RESULT_TTL" in env:
            kwargs["result_ttl"] = float(env[f"{prefix}RESULT_TTL"])
        if f"{prefix}LOCK_TTL" in env:
            kwargs["lock_ttl"] = float(env[f"{prefix}LOCK_TTL"])
        if f"{prefix}ON_CORRUPT" in env:
            kwargs["on_corrupt"] = env[f"{prefix}ON_CORRUPT"].strip().lower()
        if f"{prefix}VERIFY_PAYLOAD" in env:
            kwargs["verify_payload"] = (
                env[f"{prefix}VERIFY_PAYLOAD"].strip().lower() in _TRUTHY
            )

        return cls(**kwargs)  # type: ignore[arg-type]
