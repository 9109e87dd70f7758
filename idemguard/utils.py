import math


def ensure_float(value: object, default: float | None = 0.0) -> float | None:
    """Convert a value to float, with a default fallback."""
    try:
        return float(value) if isinstance(value, (int, float, str)) else default
    except (TypeError, ValueError):
        return default


def to_milliseconds(seconds: float) -> int:
    """Convert a TTL in seconds to whole milliseconds, never below 1."""
    if not math.isfinite(seconds):
        raise ValueError(f"TTL must be finite, got {seconds}")
    return max(1, int(round(seconds * 1000)))


def ensure_bytes(value: bytes | str) -> bytes:
    """Normalize a store value to bytes."""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)
