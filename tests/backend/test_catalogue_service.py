from __future__ import annotations

import json
import random
import threading

import pytest

from autorent.errors import FetchFailed, VehicleNotFound
from autorent.catalogue.normalizer import normalize_batch
from autorent.models import CatalogueSnapshot, Category, RawVehicle, VehicleRecord
from autorent.services.catalogue_service import CatalogueStore, filter_catalogue
from autorent.storage.repository import CACHED_CARS_KEY, InMemoryStore, read_json

RAW_BATCH = [
    RawVehicle(make="toyota", model="camry", year=2020, vehicle_class="midsize car", cylinders=4),
    RawVehicle(make="jeep", model="wrangler", year=2021, vehicle_class="sport utility vehicle", cylinders=6),
    RawVehicle(make="ford", model="mustang", year=2022, vehicle_class="subcompact car", cylinders=8),
]


class FakeClient:
    def __init__(self, vehicles: list[RawVehicle] | None = None, error: Exception | None = None) -> None:
        self.vehicles = vehicles if vehicles is not None else list(RAW_BATCH)
        self.error = error
        self.calls: list[int] = []
        self.searches: list[dict] = []
        self.started = threading.Event()
        self.release = threading.Event()
        self.release.set()

    def fetch_random_cars(self, count: int, rng: random.Random | None = None) -> list[RawVehicle]:
        self.calls.append(count)
        self.started.set()
        self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return list(self.vehicles)

    def search_cars(self, params: dict) -> list[RawVehicle]:
        self.searches.append(dict(params))
        return list(self.vehicles)


class FailingWriteStore(InMemoryStore):
    def set(self, key: str, value: str) -> None:
        raise OSError("read-only storage")


def _record(index: int, make: str, model: str, category: Category, **fields) -> VehicleRecord:
    return VehicleRecord(
        id=f"{make}-{model}-2020-{index}", make=make, model=model, year=2020, price=60, type=category, **fields
    )


@pytest.fixture
def snapshot() -> CatalogueSnapshot:
    return CatalogueSnapshot.of(
        [
            _record(0, "toyota", "camry", Category.SEDAN),
            _record(1, "toyota", "rav4", Category.SUV),
            _record(2, "ford", "mustang", Category.SPORT),
            _record(3, "honda", "civic", Category.SEDAN),
        ]
    )


def test_load_or_fetch_fetches_and_caches_when_no_cache() -> None:
    client = FakeClient()
    store = InMemoryStore()
    catalogue = CatalogueStore(client, store, batch_size=12, current_year=2026)

    snapshot = catalogue.load_or_fetch()

    assert client.calls == [12]
    assert [record.id for record in snapshot] == [
        "toyota-camry-2020-0",
        "jeep-wrangler-2021-1",
        "ford-mustang-2022-2",
    ]
    assert [record.type for record in snapshot] == [Category.SEDAN, Category.SUV, Category.SPORT]
    assert all(record.price > 0 and record.price % 10 == 0 for record in snapshot)
    assert read_json(store, CACHED_CARS_KEY, default=None) == snapshot.to_list()


def test_load_or_fetch_reuses_loaded_snapshot() -> None:
    client = FakeClient()
    catalogue = CatalogueStore(client, InMemoryStore())

    first = catalogue.load_or_fetch()
    second = catalogue.load_or_fetch()

    assert first is second
    assert len(client.calls) == 1


def test_cached_catalogue_is_reclassified_without_touching_ids_or_prices() -> None:
    stale = []
    for index in range(12):
        stale.append(
            {
                "id": f"toyota-camry-2020-{index}",
                "make": "toyota",
                "model": "camry",
                "year": 2020,
                "class": "midsize car",
                "price": 70 + index * 10,
                "type": "SUV",
            }
        )
    stale[0]["type"] = "Hatchback"
    store = InMemoryStore({CACHED_CARS_KEY: json.dumps(stale)})
    client = FakeClient()
    catalogue = CatalogueStore(client, store)

    snapshot = catalogue.load_or_fetch()

    assert client.calls == []
    assert len(snapshot) == 12
    assert {record.type for record in snapshot} == {Category.SEDAN}
    assert [record.id for record in snapshot] == [entry["id"] for entry in stale]
    assert [record.price for record in snapshot] == [entry["price"] for entry in stale]
    assert read_json(store, CACHED_CARS_KEY, default=None) == stale


def test_unreadable_or_empty_cache_triggers_fetch() -> None:
    for cached in ("{broken", "[]", json.dumps([{"make": "toyota"}])):
        client = FakeClient()
        catalogue = CatalogueStore(client, InMemoryStore({CACHED_CARS_KEY: cached}))

        assert len(catalogue.load_or_fetch()) == 3
        assert len(client.calls) == 1


def test_concurrent_loads_share_a_single_fetch() -> None:
    client = FakeClient()
    client.release.clear()
    catalogue = CatalogueStore(client, InMemoryStore())
    results: list[CatalogueSnapshot] = []

    def _load() -> None:
        results.append(catalogue.load_or_fetch())

    threads = [threading.Thread(target=_load) for _ in range(5)]
    threads[0].start()
    assert client.started.wait(timeout=5)
    for thread in threads[1:]:
        thread.start()
    client.release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert len(client.calls) == 1
    assert len(results) == 5
    assert all(result is results[0] for result in results)


def test_fetch_failure_propagates_and_is_not_retried() -> None:
    cause = ConnectionError("offline")
    client = FakeClient(error=FetchFailed("Failed to fetch car data", cause=cause))
    store = InMemoryStore()
    catalogue = CatalogueStore(client, store)

    with pytest.raises(FetchFailed) as excinfo:
        catalogue.load_or_fetch()

    assert excinfo.value.cause is cause
    assert len(client.calls) == 1
    assert store.get(CACHED_CARS_KEY) is None

    client.error = None
    assert len(catalogue.load_or_fetch()) == 3
    assert len(client.calls) == 2


def test_refresh_overwrites_cache() -> None:
    client = FakeClient()
    store = InMemoryStore()
    catalogue = CatalogueStore(client, store)
    catalogue.load_or_fetch()

    client.vehicles = [RawVehicle(make="bmw", model="m3", year=2023, vehicle_class="compact car", cylinders=6)]
    snapshot = catalogue.refresh(4)

    assert client.calls[-1] == 4
    assert [record.id for record in snapshot] == ["bmw-m3-2023-0"]
    assert catalogue.snapshot is snapshot
    assert read_json(store, CACHED_CARS_KEY, default=None) == snapshot.to_list()


def test_cache_write_failure_keeps_catalogue_in_memory() -> None:
    catalogue = CatalogueStore(FakeClient(), FailingWriteStore())

    snapshot = catalogue.load_or_fetch()

    assert len(snapshot) == 3
    assert catalogue.snapshot is snapshot


def test_get_and_select_use_current_snapshot() -> None:
    catalogue = CatalogueStore(FakeClient(), InMemoryStore())
    catalogue.load_or_fetch()

    assert catalogue.get("jeep-wrangler-2021-1").make == "jeep"
    assert [record.model for record in catalogue.select(["ford-mustang-2022-2", "missing", "toyota-camry-2020-0"])] == [
        "mustang",
        "camry",
    ]
    with pytest.raises(VehicleNotFound):
        catalogue.get("missing")
    assert catalogue.type_distribution() == {"Sedan": 1, "SUV": 1, "Sport": 1}


def test_filter_searches_make_model_and_type(snapshot: CatalogueSnapshot) -> None:
    assert [record.model for record in filter_catalogue(snapshot, "TOY")] == ["camry", "rav4"]
    assert [record.model for record in filter_catalogue(snapshot, "civ")] == ["civic"]
    assert [record.model for record in filter_catalogue(snapshot, "sport")] == ["mustang"]
    assert [record.model for record in filter_catalogue(snapshot, "   ")] == ["camry", "rav4", "mustang", "civic"]


def test_filter_by_category_and_search_is_conjunctive(snapshot: CatalogueSnapshot) -> None:
    assert [record.model for record in filter_catalogue(snapshot, None, Category.SEDAN)] == ["camry", "civic"]
    assert [record.model for record in filter_catalogue(snapshot, "toyota", "Sedan")] == ["camry"]
    assert [record.model for record in filter_catalogue(snapshot, "ford", Category.SEDAN)] == []
    assert len(filter_catalogue(snapshot, "", "Hatchback")) == 0


def test_filter_with_no_criteria_is_idempotent(snapshot: CatalogueSnapshot) -> None:
    once = filter_catalogue(snapshot, "o", Category.SEDAN)
    twice = filter_catalogue(once, "", "ALL")

    assert twice == once
    assert len(snapshot) == 4


def test_normalize_batch_ids_for_missing_year() -> None:
    snapshot = normalize_batch(
        [RawVehicle(make="tesla", model="model 3"), RawVehicle(make="tesla"), RawVehicle(make="bmw", model="i4", year=2023)],
        current_year=2026,
    )

    assert [record.id for record in snapshot] == ["tesla-model 3-undefined-0", "bmw-i4-2023-1"]


def test_search_is_not_cached_or_merged() -> None:
    client = FakeClient()
    store = InMemoryStore()
    catalogue = CatalogueStore(client, store, current_year=2026)

    results = catalogue.search({"make": "toyota"})

    assert client.searches == [{"make": "toyota"}]
    assert [record.type for record in results] == [Category.SEDAN, Category.SUV, Category.SPORT]
    assert len(catalogue.snapshot) == 0
    assert store.get(CACHED_CARS_KEY) is None
    assert client.calls == []
