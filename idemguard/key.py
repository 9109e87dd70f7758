"""Payload fingerprints for strict idempotency checks."""

import dataclasses
import datetime
import decimal
import enum
import hashlib
import json
import uuid

from .exceptions import SerializationError

FINGERPRINT_HOOK = "__idempotency_payload__"


def fingerprint(*args: object, **kwargs: object) -> str:
    """Generate a stable fingerprint of an operation's payload.

    Two calls with equal arguments produce the same fingerprint regardless
    of dict or set ordering, object identity, or which process made them.

    Supported values: JSON primitives, Decimal, dates, UUID, bytes, Enum,
    lists, tuples, sets, dicts, dataclasses, objects defining
    ``__idempotency_payload__()`` and plain objects with a ``__dict__``.

    Returns:
        Hex SHA-256 digest of the normalized arguments

    Raises:
        SerializationError: If an argument has no stable representation

    Example:
        fingerprint(amount=Decimal("100.50"), currency="USD")
    """
    normalized = _normalize_args(args, kwargs)
    canonical = ":".join(f"{k}={v}" for k, v in sorted(normalized.items()))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _normalize_args(
    args: tuple[object, ...], kwargs: dict[str, object]
) -> dict[str, str]:
    """Normalize arguments to a stable string representation."""
    normalized: dict[str, str] = {}

    for i, arg in enumerate(args):
        normalized[f"arg{i}"] = _serialize_value(arg)

    for key, value in kwargs.items():
        normalized[key] = _serialize_value(value)

    return normalized


def _serialize_value(value: object) -> str:
    """Serialize a value to a stable string representation."""
    if isinstance(value, (str, int, float, bool, type(None))):
        return json.dumps(value)

    # Decimal("1.0") and Decimal("1.00") are the same amount
    if isinstance(value, decimal.Decimal):
        return json.dumps(str(value.normalize()))

    if isinstance(value, (datetime.datetime, datetime.date)):
        return json.dumps(value.isoformat())

    if isinstance(value, uuid.UUID):
        return json.dumps(str(value))

    if isinstance(value, (bytes, bytearray)):
        return json.dumps(bytes(value).hex())

    if isinstance(value, enum.Enum):
        return _serialize_object(value, value.value)

    if isinstance(value, (list, tuple)):
        return json.dumps([_serialize_value(v) for v in value])

    if isinstance(value, dict):
        return json.dumps(
            {str(k): _serialize_value(v) for k, v in value.items()},
            sort_keys=True,
        )

    # Handle sets (convert to sorted list)
    if isinstance(value, (set, frozenset)):
        return json.dumps(sorted(_serialize_value(v) for v in value))

    hook = getattr(value, FINGERPRINT_HOOK, None)
    if callable(hook):
        return _serialize_object(value, hook())

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        state = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return _serialize_object(value, state)

    if hasattr(value, "__dict__") and not callable(value):
        return _serialize_object(value, vars(value))

    # A repr would embed the object's address and differ between calls
    raise SerializationError(
        value, f"no stable fingerprint for {type(value).__qualname__}"
    )


def _serialize_object(value: object, state: object) -> str:
    """Serialize an object's state together with its type name."""
    cls = type(value)
    return json.dumps(
        {
            "type": f"{cls.__module__}.{cls.__qualname__}",
            "state": _serialize_value(state),
        },
        sort_keys=True,
    )
