"""Basic usage examples for idempotency guard."""

import threading
from dataclasses import dataclass
from decimal import Decimal

import structlog

from idemguard import (
    ConflictError,
    CoordinatorConfig,
    DataclassCodec,
    IdempotencyCoordinator,
    MemoryStore,
    PayloadMismatchError,
    idempotent,
)

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.dev.ConsoleRenderer(),
    ],
)


@dataclass
class Invoice:
    invoice_id: int
    user_id: int
    amount: Decimal


_next_id = iter(range(1000, 2000))

store = MemoryStore()
coordinator = IdempotencyCoordinator(store, codec=DataclassCodec(Invoice))


def charge(user_id: int, amount: Decimal) -> Invoice:
    """Charge the user and return the invoice."""
    print(f"💳 Charging user {user_id} ${amount}")
    return Invoice(invoice_id=next(_next_id), user_id=user_id, amount=amount)


# Example 2: Decorator with the key taken from the request
@idempotent(coordinator, key=lambda request_id, user_id, amount: request_id)
def create_invoice(request_id: str, user_id: int, amount: Decimal) -> Invoice:
    return charge(user_id, amount)


# Example 4: Strict payload checking
strict = IdempotencyCoordinator(
    MemoryStore(),
    config=CoordinatorConfig(verify_payload=True),
    codec=DataclassCodec(Invoice),
)


@idempotent(strict, key=lambda request_id, user_id, amount: request_id)
def create_invoice_strict(request_id: str, user_id: int, amount: Decimal) -> Invoice:
    return charge(user_id, amount)


if __name__ == "__main__":
    print("=" * 60)
    print("Example 1: execute() with an idempotency key")
    print("=" * 60)

    first = coordinator.execute("req-1", lambda: charge(123, Decimal("100.50")))
    print(f"Result: {first.value} cached={first.cached}\n")

    print("Retrying with the same key (and a different amount)...")
    second = coordinator.execute("req-1", lambda: charge(123, Decimal("999")))
    print(f"Result: {second.value} cached={second.cached}")
    print("Notice: No charge happened, the original invoice came back!\n")

    print("=" * 60)
    print("Example 2: Decorator")
    print("=" * 60)

    print(create_invoice("req-2", user_id=7, amount=Decimal("20")))
    print(create_invoice("req-2", user_id=7, amount=Decimal("20")))
    print()

    print("=" * 60)
    print("Example 3: Concurrent duplicate while in flight")
    print("=" * 60)

    started = threading.Event()
    release = threading.Event()

    def slow_charge() -> Invoice:
        started.set()
        release.wait()
        return charge(42, Decimal("5"))

    worker = threading.Thread(
        target=coordinator.execute, args=("req-3", slow_charge)
    )
    worker.start()
    started.wait()

    try:
        coordinator.execute("req-3", lambda: charge(42, Decimal("5")))
    except ConflictError as e:
        print(f"❌ {e}  (an HTTP layer would answer 409 Conflict)")

    release.set()
    worker.join()
    print()

    print("=" * 60)
    print("Example 4: Strict payload checking")
    print("=" * 60)

    create_invoice_strict("req-4", user_id=1, amount=Decimal("10"))
    try:
        create_invoice_strict("req-4", user_id=1, amount=Decimal("11"))
    except PayloadMismatchError as e:
        print(f"❌ {e}")
