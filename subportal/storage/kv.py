"""Local key-value stores holding string values.

Views never touch files directly; they receive a ``KeyValueStore`` and go
through it, so tests can hand them a ``MemoryStore`` instead.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from subportal.utils.atomic import AtomicWriteError, atomic_write_json
from subportal.utils.logging import get_logger
from subportal.utils.result import StorageError

logger = get_logger("storage.kv")


class KeyValueStore(ABC):
    """String-to-string store that survives for the life of its backing."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store value under key.

        Raises:
            StorageError: If the value could not be persisted
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key if present."""

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently stored."""

    def clear(self) -> None:
        """Delete every key."""
        for key in self.keys():
            self.remove(key)


class MemoryStore(KeyValueStore):
    """
    In-process store.

    An optional quota (UTF-8 bytes over all keys and values) makes writes
    fail the way a full browser store does.
    """

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def _size_with(self, key: str, value: str) -> int:
        data = dict(self._data)
        data[key] = value
        return sum(len(k.encode("utf-8")) + len(v.encode("utf-8")) for k, v in data.items())

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Values must be strings, got {type(value).__name__}")

        if self.quota_bytes is not None:
            size = self._size_with(key, value)
            if size > self.quota_bytes:
                logger.error(
                    "quota_exceeded",
                    key=key,
                    size=size,
                    quota_bytes=self.quota_bytes,
                )
                raise StorageError(key, f"quota of {self.quota_bytes} bytes exceeded")

        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore(KeyValueStore):
    """
    Store persisted as a single JSON object in a file.

    The file is re-read on every access so a reload picks up whatever is on
    disk. Writes replace the file atomically.
    """

    def __init__(self, path: str | Path) -> None:
        """
        Initialize the store.

        Args:
            path: JSON file to read and write (created on first write)
        """
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("store_read_failed", path=str(self.path), error=str(e))
            return {}

        if not isinstance(data, dict):
            logger.warning("store_not_a_mapping", path=str(self.path))
            return {}

        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str], key: str) -> None:
        try:
            atomic_write_json(self.path, data)
        except AtomicWriteError as e:
            raise StorageError(key, str(e)) from e

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"Values must be strings, got {type(value).__name__}")

        data = self._read()
        data[key] = value
        self._write(data, key)
        logger.debug("store_write", key=key, size=len(value))

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data, key)

    def keys(self) -> list[str]:
        return list(self._read())

    def clear(self) -> None:
        if self.path.exists():
            self._write({}, "*")


def open_store(backend: str, data_file: Path, quota_bytes: Optional[int] = None) -> KeyValueStore:
    """
    Build the store named by configuration.

    Args:
        backend: 'file' or 'memory'
        data_file: JSON file for the file backend
        quota_bytes: Byte quota for the memory backend

    Returns:
        KeyValueStore instance
    """
    if backend == "memory":
        return MemoryStore(quota_bytes=quota_bytes)
    if backend == "file":
        return JsonFileStore(data_file)
    raise ValueError(f"Unknown storage backend: {backend}")
