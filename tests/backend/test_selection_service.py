from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

from autorent.models import Category, VehicleRecord
from autorent.services.selection_service import (
    RecentlyViewed,
    SelectionSet,
    add_view,
    toggle_selection,
)
from autorent.storage.repository import (
    COMPARE_LIST_KEY,
    FAVORITES_KEY,
    RECENTLY_VIEWED_KEY,
    InMemoryStore,
)


class FailingWriteStore(InMemoryStore):
    def set(self, key: str, value: str) -> None:
        raise OSError("read-only storage")

    def remove(self, key: str) -> None:
        raise OSError("read-only storage")


class TickingClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 5, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


def _car(make: str, model: str, year: int | None, price: int = 60, index: int = 0) -> VehicleRecord:
    return VehicleRecord(
        id=f"{make}-{model}-{year}-{index}", make=make, model=model, year=year, price=price, type=Category.SEDAN
    )


def test_toggle_selection_respects_max_size() -> None:
    first = toggle_selection((), "a", max_size=2)
    second = toggle_selection(first.ids, "b", max_size=2)
    third = toggle_selection(second.ids, "c", max_size=2)

    assert (first.changed, first.rejected) == (True, False)
    assert (second.changed, second.rejected) == (True, False)
    assert second.ready_to_compare
    assert (third.changed, third.rejected) == (False, True)
    assert third.ids == ("a", "b")


def test_compare_list_rejects_third_vehicle() -> None:
    store = InMemoryStore()
    compare = SelectionSet.compare_list(store)

    results = [compare.toggle(record_id) for record_id in ("a", "b", "c")]

    assert [(result.changed, result.rejected) for result in results] == [(True, False), (True, False), (False, True)]
    assert compare.ids == ("a", "b")
    assert "c" not in compare
    assert json.loads(store.get(COMPARE_LIST_KEY)) == ["a", "b"]
    assert compare.limit_notice == "You can only compare up to 2 cars at a time."


def test_compare_list_accepts_new_vehicle_after_removal() -> None:
    compare = SelectionSet.compare_list(InMemoryStore())
    compare.toggle("a")
    compare.toggle("b")

    removed = compare.remove("a")
    added = compare.toggle("c")

    assert removed.changed
    assert added.changed and not added.rejected
    assert compare.ids == ("b", "c")
    assert not compare.remove("missing").changed


def test_favorites_toggle_twice_is_identity() -> None:
    store = InMemoryStore()
    favorites = SelectionSet.favorites(store)
    favorites.toggle("a")
    before = favorites.ids

    favorites.toggle("b")
    favorites.toggle("b")

    assert favorites.ids == before
    assert json.loads(store.get(FAVORITES_KEY)) == ["a"]


def test_favorites_are_unbounded_and_keep_insertion_order() -> None:
    favorites = SelectionSet.favorites(InMemoryStore())

    for index in range(10):
        assert not favorites.toggle(f"car-{index}").rejected

    assert favorites.ids == tuple(f"car-{index}" for index in range(10))


def test_load_treats_absent_value_as_empty_and_dedupes() -> None:
    assert SelectionSet.favorites(InMemoryStore()).load() == ()

    store = InMemoryStore({FAVORITES_KEY: json.dumps(["a", "b", "a", 7])})
    assert SelectionSet.favorites(store).load() == ("a", "b")


def test_selection_survives_reload() -> None:
    store = InMemoryStore()
    SelectionSet.favorites(store).toggle("a")

    reloaded = SelectionSet.favorites(store)
    reloaded.load()

    assert "a" in reloaded


def test_write_failure_keeps_in_memory_state() -> None:
    favorites = SelectionSet.favorites(FailingWriteStore())

    result = favorites.toggle("a")

    assert result.changed
    assert favorites.ids == ("a",)
    assert favorites.clear() == ()


def test_add_view_moves_duplicate_to_front_with_latest_data() -> None:
    viewed_at = datetime(2025, 5, 1, tzinfo=UTC)
    entries = add_view([], _car("Toyota", "Camry", 2020, price=60), viewed_at)
    entries = add_view(entries, _car("Toyota", "Camry", 2020, price=80, index=5), viewed_at)

    assert len(entries) == 1
    assert entries[0].record.price == 80


def test_recently_viewed_keeps_five_most_recent() -> None:
    store = InMemoryStore()
    recent = RecentlyViewed(store, clock=TickingClock())

    for year in range(2015, 2022):
        recent.add(_car("honda", "civic", year))
    recent.add(_car("honda", "civic", 2017))

    assert [entry.record.year for entry in recent.entries] == [2017, 2021, 2020, 2019, 2018]
    assert len(json.loads(store.get(RECENTLY_VIEWED_KEY))) == 5


def test_recently_viewed_round_trips_through_storage() -> None:
    store = InMemoryStore()
    clock = TickingClock()
    RecentlyViewed(store, clock=clock).add(_car("Toyota", "Camry", 2020, price=60))

    reloaded = RecentlyViewed(store)
    entries = reloaded.load()

    assert len(entries) == 1
    assert entries[0].record.make == "Toyota"
    assert entries[0].viewed_at == clock.now


def test_recently_viewed_clear() -> None:
    store = InMemoryStore()
    recent = RecentlyViewed(store)
    recent.add(_car("Toyota", "Camry", 2020))

    assert recent.clear() == []
    assert store.get(RECENTLY_VIEWED_KEY) is None
    assert RecentlyViewed(FailingWriteStore()).clear() == []
