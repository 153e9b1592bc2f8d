"""
CoachPilot AI - Key-Value Storage Medium

String-keyed, string-valued persistent maps. The engine stores every
collection as one JSON payload under one key, so a backend only needs
get/set/delete.

InMemoryKeyValueStore is used for tests and demo runs; JsonFileKeyValueStore
survives process restarts.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the storage medium cannot be read or written."""

    def __init__(self, message: str, original_error: Exception | None = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


class KeyValueStore(ABC):
    """Minimal contract of the storage medium."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key; removing an absent key is a no-op."""

    def keys(self) -> list[str]:
        return []


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store backed by a dict."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string, got {type(value).__name__}")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def clear(self):
        """Clear all data (for testing)."""
        self._data.clear()
        logger.warning("All in-memory storage data cleared")


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store persisted as a single JSON object on disk.

    Every write rewrites the whole file through a temporary file followed by
    os.replace, so readers never observe a half-written document.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Storage file {self.path} is not valid UTF-8, treating as empty: {e}")
            return {}
        except OSError as e:
            raise StorageError(f"Could not read {self.path}", e) from e

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Storage file {self.path} is not valid JSON, treating as empty: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Storage file {self.path} does not hold an object, treating as empty")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageError(f"Could not write {self.path}", e) from e

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key!r} must be a string, got {type(value).__name__}")
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)

    def keys(self) -> list[str]:
        return list(self._read_all())
