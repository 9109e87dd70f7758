"""Shared fixtures: an in-memory payment service and failure-injecting stores."""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

import pytest

from idemguard import (
    CoordinatorConfig,
    DataclassCodec,
    IdempotencyCoordinator,
    MemoryStore,
    StoreError,
)


@dataclass
class Transaction:
    id: int
    amount: Decimal
    currency: str
    status: str
    fee: Decimal
    net_amount: Decimal
    created_at: datetime


class PaymentService:
    """Creates transactions with sequential ids and records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[Decimal, str]] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def create(self, amount: Decimal | str, currency: str) -> Transaction:
        amount = Decimal(str(amount))
        fee = (amount * Decimal("0.025") + Decimal("0.30")).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        with self._lock:
            self.calls.append((amount, currency))
            tx_id = self._next_id
            self._next_id += 1

        return Transaction(
            id=tx_id,
            amount=amount,
            currency=currency,
            status="COMPLETED",
            fee=fee,
            net_amount=amount - fee,
            created_at=datetime.now(timezone.utc),
        )


class FailingStore(MemoryStore):
    """MemoryStore that raises StoreError for the named operations."""

    def __init__(self, fail_on: tuple[str, ...] = ()) -> None:
        super().__init__()
        self.fail_on = set(fail_on)

    def _maybe_fail(self, operation: str, key: str) -> None:
        if operation in self.fail_on:
            raise StoreError(operation, key, "connection refused")

    def get(self, key: str) -> bytes | None:
        self._maybe_fail("get", key)
        return super().get(key)

    def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        self._maybe_fail("set", key)
        super().set(key, value, ttl=ttl)

    def set_if_absent(self, key: str, value: bytes, ttl: float) -> bool:
        self._maybe_fail("set_if_absent", key)
        return super().set_if_absent(key, value, ttl)

    def delete(self, key: str) -> None:
        self._maybe_fail("delete", key)
        super().delete(key)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def payments():
    return PaymentService()


@pytest.fixture
def coordinator(store):
    return IdempotencyCoordinator(
        store, config=CoordinatorConfig(), codec=DataclassCodec(Transaction)
    )
