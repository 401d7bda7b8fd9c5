from __future__ import annotations

import pytest

from autorent.errors import PersistenceUnavailable
from autorent.storage.repository import (
    FAVORITES_KEY,
    InMemoryStore,
    JsonFileStore,
    read_json,
    write_json,
)


class BrokenStore(InMemoryStore):
    def get(self, key: str) -> str | None:
        raise OSError("disk unavailable")

    def set(self, key: str, value: str) -> None:
        raise OSError("disk full")


def test_file_store_reads_back_completed_write(tmp_path) -> None:
    store = JsonFileStore(tmp_path)

    store.set(FAVORITES_KEY, '["a"]')
    assert store.get(FAVORITES_KEY) == '["a"]'

    store.set(FAVORITES_KEY, '["a", "b"]')
    assert store.get(FAVORITES_KEY) == '["a", "b"]'
    assert store.file_path_for(FAVORITES_KEY).name == "autorent_favorites.json"
    assert not list(tmp_path.glob("*.tmp"))


def test_file_store_remove_is_idempotent(tmp_path) -> None:
    store = JsonFileStore(tmp_path)
    store.set("bookings", "[]")

    store.remove("bookings")
    store.remove("bookings")

    assert store.get("bookings") is None


def test_read_json_returns_default_for_absent_or_invalid_values() -> None:
    store = InMemoryStore({"broken": "{not json"})

    assert read_json(store, "missing", default=[]) == []
    assert read_json(store, "broken", default=[]) == []


def test_read_json_treats_read_failure_as_absent() -> None:
    assert read_json(BrokenStore(), FAVORITES_KEY, default=[]) == []


def test_write_json_round_trips_through_store() -> None:
    store = InMemoryStore()

    write_json(store, FAVORITES_KEY, ["toyota-camry-2020-0"])

    assert read_json(store, FAVORITES_KEY, default=None) == ["toyota-camry-2020-0"]


def test_write_json_wraps_store_failures() -> None:
    with pytest.raises(PersistenceUnavailable) as excinfo:
        write_json(BrokenStore(), FAVORITES_KEY, [])

    assert isinstance(excinfo.value.cause, OSError)
    assert excinfo.value.to_dict()["key"] == FAVORITES_KEY
