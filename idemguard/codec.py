"""Result codecs: convert operation results to and from store bytes."""

import dataclasses
import datetime
import decimal
import enum
import json
import typing
import uuid
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from .exceptions import SerializationError

T = TypeVar("T")


class ResultCodec(ABC, Generic[T]):
    """Abstract base class for result codecs.

    Encoded values must decode to an equal value.
    """

    @abstractmethod
    def encode(self, value: T) -> bytes:
        """Encode a result for storage.

        Raises:
            SerializationError: If the value cannot be encoded
        """
        pass

    @abstractmethod
    def decode(self, data: bytes) -> T:
        """Decode a stored result.

        Raises:
            SerializationError: If the data is not a valid encoding
        """
        pass


class JsonCodec(ResultCodec[Any]):
    """Codec for JSON-compatible values (dicts, lists, strings, numbers)."""

    def encode(self, value: Any) -> bytes:
        try:
            return json.dumps(value, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(value, str(e)) from e

    def decode(self, data: bytes) -> Any:
        try:
            return json.loads(data)
        except (UnicodeDecodeError, ValueError) as e:
            raise SerializationError(data, str(e)) from e


class DataclassCodec(ResultCodec[T]):
    """Codec for a dataclass result type.

    Fields typed as Decimal, datetime, date, UUID or Enum (optionally
    wrapped in ``X | None``) are written as strings and restored from
    the field annotations on decode, including inside list, tuple, set
    and dict fields and nested dataclasses.

    Args:
        cls: The dataclass to decode into
    """

    def __init__(self, cls: type[T]) -> None:
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls!r} is not a dataclass")
        self.cls = cls
        self._hints = typing.get_type_hints(cls)

    def encode(self, value: T) -> bytes:
        if not isinstance(value, self.cls):
            raise SerializationError(
                value, f"expected {self.cls.__name__}, got {type(value).__name__}"
            )
        try:
            payload = {
                f.name: _to_json(getattr(value, f.name))
                for f in dataclasses.fields(value)  # type: ignore[arg-type]
            }
            return json.dumps(payload, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(value, str(e)) from e

    def decode(self, data: bytes) -> T:
        try:
            payload = json.loads(data)
            if not isinstance(payload, dict):
                raise ValueError(f"expected object, got {type(payload).__name__}")

            kwargs = {
                f.name: _from_json(payload[f.name], self._hints[f.name])
                for f in dataclasses.fields(self.cls)  # type: ignore[arg-type]
                if f.init and f.name in payload
            }
            return self.cls(**kwargs)
        except (
            UnicodeDecodeError,
            ValueError,
            TypeError,
            KeyError,
            decimal.InvalidOperation,
        ) as e:
            raise SerializationError(data, str(e)) from e


def _to_json(value: object) -> object:
    """Convert a field value to a JSON-compatible value."""
    if isinstance(value, decimal.Decimal):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return _to_json(value.value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: _to_json(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, (list, tuple)):
        return [_to_json(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return [_to_json(v) for v in value]
    if isinstance(value, dict):
        return {str(_to_json(k)): _to_json(v) for k, v in value.items()}
    return value


def _from_json(value: object, hint: object) -> object:
    """Restore a field value from its JSON form using the field annotation.

    Containers (list, tuple, set, dict) and nested dataclasses are
    restored element by element from their type arguments.
    """
    if value is None:
        return None

    # Unwrap Optional / X | None
    args = typing.get_args(hint)
    if args and type(None) in args:
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1:
            hint = non_none[0]

    origin = typing.get_origin(hint)
    if origin is not None:
        return _from_json_generic(value, origin, typing.get_args(hint))

    if not isinstance(hint, type):
        return value

    if dataclasses.is_dataclass(hint):
        if not isinstance(value, dict):
            raise ValueError(f"expected object for {hint.__name__}")
        hints = typing.get_type_hints(hint)
        return hint(
            **{
                f.name: _from_json(value[f.name], hints[f.name])
                for f in dataclasses.fields(hint)
                if f.init and f.name in value
            }
        )
    if issubclass(hint, decimal.Decimal):
        return decimal.Decimal(str(value))
    if issubclass(hint, datetime.datetime):
        return datetime.datetime.fromisoformat(str(value))
    if issubclass(hint, datetime.date):
        return datetime.date.fromisoformat(str(value))
    if issubclass(hint, uuid.UUID):
        return uuid.UUID(str(value))
    if issubclass(hint, enum.Enum):
        return hint(value)
    if issubclass(hint, bool):
        return value
    # Dict keys come back as strings
    if issubclass(hint, int) and isinstance(value, str):
        return int(value)
    if issubclass(hint, float) and isinstance(value, (int, str)):
        return float(value)
    return value


def _from_json_generic(value: object, origin: object, args: tuple) -> object:
    """Restore a parameterized container such as list[Decimal]."""
    if origin in (list, set, frozenset):
        if not isinstance(value, list):
            raise ValueError(f"expected array, got {type(value).__name__}")
        item = args[0] if args else Any
        items = [_from_json(v, item) for v in value]
        return items if origin is list else origin(items)  # type: ignore[operator]

    if origin is tuple:
        if not isinstance(value, list):
            raise ValueError("expected array for tuple")
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_from_json(v, args[0]) for v in value)
        if args and len(args) != len(value):
            raise ValueError(f"expected {len(args)} tuple items, got {len(value)}")
        if not args:
            return tuple(value)
        return tuple(_from_json(v, a) for v, a in zip(value, args))

    if origin is dict:
        if not isinstance(value, dict):
            raise ValueError("expected object for dict")
        key_hint, value_hint = args if len(args) == 2 else (Any, Any)
        return {
            _from_json(k, key_hint): _from_json(v, value_hint)
            for k, v in value.items()
        }

    # Unions with several members, Literal and friends are left as decoded
    return value
