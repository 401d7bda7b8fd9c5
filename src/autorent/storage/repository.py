"""Key-value storage for favorites, compare list, cached catalogue and bookings."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from ..errors import PersistenceUnavailable

logger = logging.getLogger(__name__)

FAVORITES_KEY = "@autorent_favorites"
COMPARE_LIST_KEY = "@autorent_compare_list"
CACHED_CARS_KEY = "@autorent_cached_cars"
RECENTLY_VIEWED_KEY = "recentlyViewedCars"
DARK_MODE_KEY = "DARK_MODE_PREFERENCE"
BOOKINGS_KEY = "bookings"


class KeyValueStore(ABC):
    """Whole-document string store; values are JSON text."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or ``None`` when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Replace the value stored under ``key``."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; removing an absent key is not an error."""


class InMemoryStore(KeyValueStore):
    """Process-local store used by tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)


class JsonFileStore(KeyValueStore):
    """Persists each key as its own JSON file under ``base_path``.

    Writes go to a temporary file that replaces the target in one step, so a
    read issued after a completed write always sees that write.
    """

    def __init__(self, base_path: Path) -> None:
        self._base_path = base_path
        self._base_path.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _file_for(self, key: str) -> Path:
        safe_key = "".join(char if char.isalnum() or char in "-_" else "_" for char in key.lstrip("@"))
        return self._base_path / f"{safe_key}.json"

    def file_path_for(self, key: str) -> Path:
        """Public accessor for the file backing ``key``."""

        return self._file_for(key)

    def get(self, key: str) -> str | None:
        file_path = self._file_for(key)
        with self._lock:
            if not file_path.exists():
                return None
            return file_path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        file_path = self._file_for(key)
        with self._lock:
            handle, temp_name = tempfile.mkstemp(dir=self._base_path, prefix=f".{file_path.stem}-", suffix=".tmp")
            try:
                with os.fdopen(handle, "w", encoding="utf-8") as temp_file:
                    temp_file.write(value)
                os.replace(temp_name, file_path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise

    def remove(self, key: str) -> None:
        with self._lock:
            self._file_for(key).unlink(missing_ok=True)


def read_json(store: KeyValueStore, key: str, default: Any) -> Any:
    """Load and decode ``key``; unreadable or absent values yield ``default``."""

    try:
        raw = store.get(key)
    except OSError:
        logger.warning("Could not read %s from storage", key, exc_info=True)
        return default

    if raw is None:
        return default

    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Discarding undecodable value stored under %s", key)
        return default


def write_json(store: KeyValueStore, key: str, value: Any) -> None:
    """Encode ``value`` and store it under ``key``.

    Raises:
        PersistenceUnavailable: when the underlying store fails.
    """

    payload = json.dumps(value, ensure_ascii=False)
    try:
        store.set(key, payload)
    except OSError as exc:
        raise PersistenceUnavailable(key, cause=exc) from exc


def remove_key(store: KeyValueStore, key: str) -> None:
    try:
        store.remove(key)
    except OSError as exc:
        raise PersistenceUnavailable(key, cause=exc) from exc
