"""Catalogue loading, caching, refreshing and filtering."""
from __future__ import annotations

import logging
import random
import threading
from collections import Counter
from collections.abc import Iterable, Mapping
from concurrent.futures import Future
from typing import Any, Optional

from ..api.client import CarDataClient
from ..catalogue.classification import reclassify
from ..catalogue.normalizer import normalize_batch, snapshot_from_list
from ..errors import PersistenceUnavailable, VehicleNotFound
from ..models import ALL_CATEGORIES, CatalogueSnapshot, Category, VehicleRecord
from ..storage.repository import CACHED_CARS_KEY, KeyValueStore, read_json, write_json

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 12


def filter_catalogue(
    snapshot: CatalogueSnapshot,
    search_query: Optional[str] = None,
    category_filter: Category | str | None = ALL_CATEGORIES,
) -> CatalogueSnapshot:
    """Return the records matching both the search text and the category.

    The search matches make, model or type case-insensitively. A category of
    ``"ALL"`` (or ``None``) keeps every type. The input is never modified.
    """

    query = (search_query or "").strip().lower()
    category: Optional[Category] = None
    if category_filter is not None and category_filter != ALL_CATEGORIES:
        category = Category.parse(category_filter)
        if category is None:
            logger.debug("Unknown category filter %r matches nothing", category_filter)
            return CatalogueSnapshot()

    def _matches(record: VehicleRecord) -> bool:
        if query and not (
            query in record.make.lower() or query in record.model.lower() or query in record.type.value.lower()
        ):
            return False
        if category is not None and record.type is not category:
            return False
        return True

    matches = [record for record in snapshot if _matches(record)]
    logger.debug("Filtered %s cars to %s (query=%r, category=%s)", len(snapshot), len(matches), query, category)
    return CatalogueSnapshot.of(matches)


class CatalogueStore:
    """Owns the in-memory catalogue snapshot and its persisted cache."""

    def __init__(
        self,
        client: CarDataClient,
        store: KeyValueStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        rng: random.Random | None = None,
        current_year: Optional[int] = None,
    ) -> None:
        self._client = client
        self._store = store
        self._batch_size = batch_size
        self._rng = rng or random.Random()
        self._current_year = current_year
        self._snapshot: Optional[CatalogueSnapshot] = None
        self._lock = threading.Lock()
        self._in_flight: Optional[Future[CatalogueSnapshot]] = None

    @property
    def snapshot(self) -> CatalogueSnapshot:
        """The current catalogue, empty until something has been loaded."""

        return self._snapshot or CatalogueSnapshot()

    def load_or_fetch(self) -> CatalogueSnapshot:
        """Return the catalogue, loading the cache or fetching when needed.

        Concurrent callers share a single load: only the first performs it,
        the others wait for its result (or its ``FetchFailed``).
        """

        with self._lock:
            if self._snapshot is not None:
                return self._snapshot
            if self._in_flight is not None:
                future = self._in_flight
                owner = False
            else:
                future = Future()
                self._in_flight = future
                owner = True

        if not owner:
            return future.result()

        try:
            snapshot = self._load_cached() or self._fetch_and_cache(self._batch_size)
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(snapshot)
            return snapshot
        finally:
            with self._lock:
                self._in_flight = None

    def refresh(self, count: Optional[int] = None) -> CatalogueSnapshot:
        """Fetch a fresh batch, overwrite the cache and replace the snapshot."""

        return self._fetch_and_cache(count if count is not None else self._batch_size)

    def search(self, params: Mapping[str, Any]) -> CatalogueSnapshot:
        """Query the API directly; results are neither cached nor merged into the catalogue."""

        snapshot = normalize_batch(self._client.search_cars(params), current_year=self._current_year)
        logger.info("Search %s returned %s cars", dict(params), len(snapshot))
        return snapshot

    def filter(
        self,
        search_query: Optional[str] = None,
        category_filter: Category | str | None = ALL_CATEGORIES,
        snapshot: Optional[CatalogueSnapshot] = None,
    ) -> CatalogueSnapshot:
        return filter_catalogue(snapshot if snapshot is not None else self.snapshot, search_query, category_filter)

    def get(self, record_id: str) -> VehicleRecord:
        record = self.snapshot.get(record_id)
        if record is None:
            raise VehicleNotFound(record_id)
        return record

    def select(self, record_ids: Iterable[str]) -> list[VehicleRecord]:
        return self.snapshot.select(record_ids)

    def type_distribution(self, snapshot: Optional[CatalogueSnapshot] = None) -> dict[str, int]:
        counts = Counter(record.type.value for record in (snapshot if snapshot is not None else self.snapshot))
        return dict(counts)

    def _load_cached(self) -> Optional[CatalogueSnapshot]:
        cached = snapshot_from_list(read_json(self._store, CACHED_CARS_KEY, default=None))
        if not len(cached):
            return None

        snapshot = reclassify(cached)
        logger.info("Using %s cached cars, types: %s", len(snapshot), self.type_distribution(snapshot))
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def _fetch_and_cache(self, count: int) -> CatalogueSnapshot:
        raw_vehicles = self._client.fetch_random_cars(count, self._rng)
        snapshot = normalize_batch(raw_vehicles, current_year=self._current_year)
        self._replace(snapshot)
        logger.info("Cached %s cars to storage", len(snapshot))
        return snapshot

    def _replace(self, snapshot: CatalogueSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot
        try:
            write_json(self._store, CACHED_CARS_KEY, snapshot.to_list())
        except PersistenceUnavailable:
            logger.warning("Catalogue cache not written; keeping it in memory only", exc_info=True)
