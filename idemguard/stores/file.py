"""File-based store implementation with cross-process locking."""

import base64
import fcntl
import hashlib
import json
import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..exceptions import StoreError
from ..utils import ensure_bytes, ensure_float
from .base import Store


class FileStore(Store):
    """File-based store for idempotency slots.

    Uses JSON files for persistence and fcntl for cross-process locking.
    Safe for multi-process scenarios on one host (e.g., gunicorn workers,
    celery).

    Args:
        directory: Path to directory for storing values
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _safe_name(self, key: str) -> str:
        # Use hash to avoid filesystem issues with special chars
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def _value_path(self, key: str) -> Path:
        """Get file path for a value."""
        return self.directory / f"{self._safe_name(key)}.json"

    def _lock_path(self, key: str) -> Path:
        """Get lock file path for a key."""
        return self.directory / f"{self._safe_name(key)}.lock"

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        """Hold an exclusive flock on the key's lock file."""
        fd = os.open(self._lock_path(key), os.O_CREAT | os.O_RDWR)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            yield
        finally:
            # Closing the descriptor drops the flock
            os.close(fd)

    def _read(self, key: str) -> bytes | None:
        path = self._value_path(key)

        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Foreign or damaged file, treat as absent
            return None

        if not isinstance(data, dict):
            return None

        # Expired files stay until the next locked write replaces them
        expires_at = ensure_float(value=data.get("expires_at"), default=None)
        if expires_at is not None and time.time() >= expires_at:
            return None

        try:
            return base64.b64decode(data["value"])
        except (KeyError, TypeError, ValueError):
            return None

    def _write(self, key: str, value: bytes, ttl: float | None) -> None:
        path = self._value_path(key)
        data = {
            "key": key,
            "value": base64.b64encode(ensure_bytes(value)).decode("ascii"),
            "expires_at": time.time() + ttl if ttl is not None else None,
        }

        # Write atomically using temp file + rename
        suffix = f"{os.getpid()}.{threading.get_ident()}.tmp"
        temp_path = path.parent / f"{path.stem}.{suffix}"
        with open(temp_path, "w") as f:
            json.dump(data, f)

        temp_path.replace(path)

    def get(self, key: str) -> bytes | None:
        """Retrieve a value, checking TTL expiration."""
        try:
            return self._read(key)
        except OSError as e:
            raise StoreError("get", key, str(e)) from e

    def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store a value with optional TTL."""
        try:
            with self._locked(key):
                self._write(key, value, ttl)
        except OSError as e:
            raise StoreError("set", key, str(e)) from e

    def set_if_absent(self, key: str, value: bytes, ttl: float) -> bool:
        """Create the value under the key's flock if no live value exists."""
        try:
            with self._locked(key):
                if self._read(key) is not None:
                    return False
                self._write(key, value, ttl)
                return True
        except OSError as e:
            raise StoreError("set_if_absent", key, str(e)) from e

    def delete(self, key: str) -> None:
        """Delete a value.

        The lock file is kept: unlinking it while another process holds
        its flock would let a third process lock a fresh inode.
        """
        try:
            with self._locked(key):
                self._value_path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StoreError("delete", key, str(e)) from e

    def clear(self) -> None:
        """Clear all values and locks (useful for testing)."""
        for path in self.directory.glob("*.json"):
            path.unlink(missing_ok=True)
        for path in self.directory.glob("*.lock"):
            path.unlink(missing_ok=True)
