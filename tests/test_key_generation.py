"""Tests for payload fingerprints."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from idemguard import SerializationError
from idemguard.key import _normalize_args, _serialize_value, fingerprint


def test_fingerprint_same_args_same_value():
    """Test that same args produce the same fingerprint."""
    assert fingerprint(1, 2, c=3) == fingerprint(1, 2, c=3)


def test_fingerprint_different_args_different_value():
    """Test that different args produce different fingerprints."""
    assert fingerprint(1, 2, c=3) != fingerprint(1, 2, c=4)
    assert fingerprint(amount=Decimal("100.50"), currency="USD") != fingerprint(
        amount=Decimal("999"), currency="EUR"
    )


def test_fingerprint_is_hex_digest():
    """Test that fingerprints are fixed-length SHA-256 hex digests."""
    value = fingerprint("x" * 1000)
    assert len(value) == 64
    int(value, 16)


def test_fingerprint_dict_order_stable():
    """Test that dict key order doesn't affect the fingerprint."""
    assert fingerprint({"x": 1, "y": 2}) == fingerprint({"y": 2, "x": 1})


def test_fingerprint_list_order_matters():
    """Test that list order is significant."""
    assert fingerprint(["a", "b"]) != fingerprint(["b", "a"])


def test_fingerprint_decimal_scale_ignored():
    """Test that equal amounts with different scale match."""
    assert fingerprint(amount=Decimal("100.5")) == fingerprint(
        amount=Decimal("100.50")
    )


def test_normalize_args():
    """Test argument normalization."""
    normalized = _normalize_args((1, "test"), {"key": "value"})

    assert normalized["arg0"] == "1"
    assert normalized["arg1"] == '"test"'
    assert normalized["key"] == '"value"'


def test_serialize_value_types():
    """Test serialization of various types."""
    assert _serialize_value(None) == "null"
    assert _serialize_value(True) == "true"
    assert _serialize_value(Decimal("1.10")) == '"1.1"'
    assert _serialize_value(date(2024, 1, 2)) == '"2024-01-02"'
    assert _serialize_value({3, 1, 2}) == _serialize_value({1, 2, 3})


class Request:
    def __init__(self, amount, currency):
        self.amount = amount
        self.currency = currency


@dataclass(frozen=True)
class Charge:
    amount: Decimal
    currency: str


class Token:
    __slots__ = ("value", "nonce")

    def __init__(self, value, nonce):
        self.value = value
        self.nonce = nonce

    def __idempotency_payload__(self):
        return {"value": self.value}


def test_fingerprint_equal_objects_match():
    """Test that equal plain objects at different addresses match."""
    first = Request(Decimal("10"), "USD")
    second = Request(Decimal("10"), "USD")

    assert fingerprint(first) == fingerprint(second)
    assert fingerprint(first) != fingerprint(Request(Decimal("11"), "USD"))


def test_fingerprint_dataclass_uses_fields():
    """Test that dataclasses are fingerprinted by field values and type."""
    assert fingerprint(Charge(Decimal("1.0"), "USD")) == fingerprint(
        Charge(Decimal("1.00"), "USD")
    )
    assert fingerprint(Charge(Decimal("1"), "USD")) != fingerprint(
        {"amount": Decimal("1"), "currency": "USD"}
    )


def test_fingerprint_hook():
    """Test that __idempotency_payload__ chooses the fingerprinted state."""
    assert fingerprint(Token("abc", nonce=1)) == fingerprint(Token("abc", nonce=2))
    assert fingerprint(Token("abc", nonce=1)) != fingerprint(Token("xyz", nonce=1))


@pytest.mark.parametrize("value", [object(), lambda: None, Request(object(), "USD")])
def test_fingerprint_rejects_unstable_values(value):
    """Test that values without a stable form raise SerializationError."""
    with pytest.raises(SerializationError):
        fingerprint(value)
