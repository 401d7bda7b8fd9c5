"""Favorites, compare list and recently viewed vehicles."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Any, Optional

from ..catalogue.normalizer import record_from_dict
from ..errors import PersistenceUnavailable
from ..models import RecentView, ToggleResult, VehicleRecord
from ..storage.repository import (
    COMPARE_LIST_KEY,
    FAVORITES_KEY,
    RECENTLY_VIEWED_KEY,
    KeyValueStore,
    read_json,
    remove_key,
    write_json,
)

logger = logging.getLogger(__name__)

COMPARE_LIMIT = 2
RECENT_LIMIT = 5
LIMIT_NOTICE = "You can only compare up to {limit} cars at a time."


def toggle_selection(ids: Sequence[str], record_id: str, max_size: Optional[int] = None) -> ToggleResult:
    """Add ``record_id`` when absent, remove it when present.

    Adding to a set already at ``max_size`` is rejected and leaves the ids
    unchanged.
    """

    current = tuple(ids)
    if record_id in current:
        return ToggleResult(
            ids=tuple(item for item in current if item != record_id),
            changed=True,
            max_size=max_size,
        )
    if max_size is not None and len(current) >= max_size:
        return ToggleResult(ids=current, changed=False, rejected=True, max_size=max_size)
    return ToggleResult(ids=current + (record_id,), changed=True, max_size=max_size)


def add_view(entries: Sequence[RecentView], record: VehicleRecord, viewed_at: datetime, limit: int = RECENT_LIMIT) -> list[RecentView]:
    """Put ``record`` at the front, replacing any entry for the same vehicle."""

    kept = [entry for entry in entries if entry.record.identity != record.identity]
    return [RecentView(record=record, viewed_at=viewed_at), *kept][:limit]


class SelectionSet:
    """An ordered set of vehicle ids persisted under a single key."""

    def __init__(self, store: KeyValueStore, key: str, max_size: Optional[int] = None) -> None:
        self._store = store
        self._key = key
        self._max_size = max_size
        self._ids: tuple[str, ...] = ()

    @classmethod
    def favorites(cls, store: KeyValueStore) -> SelectionSet:
        return cls(store, FAVORITES_KEY)

    @classmethod
    def compare_list(cls, store: KeyValueStore, limit: int = COMPARE_LIMIT) -> SelectionSet:
        return cls(store, COMPARE_LIST_KEY, max_size=limit)

    @property
    def ids(self) -> tuple[str, ...]:
        return self._ids

    @property
    def max_size(self) -> Optional[int]:
        return self._max_size

    @property
    def limit_notice(self) -> str:
        return LIMIT_NOTICE.format(limit=self._max_size)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def load(self) -> tuple[str, ...]:
        """Read the persisted ids; a missing or unreadable value loads as empty."""

        stored = read_json(self._store, self._key, default=[])
        ids: list[str] = []
        if isinstance(stored, list):
            for item in stored:
                if isinstance(item, str) and item not in ids:
                    ids.append(item)
        self._ids = tuple(ids)
        return self._ids

    def toggle(self, record_id: str) -> ToggleResult:
        result = toggle_selection(self._ids, record_id, self._max_size)
        if result.rejected:
            logger.info("Selection %s is full (%s); rejected %s", self._key, self._max_size, record_id)
        elif result.changed:
            self._commit(result.ids)
        return result

    def remove(self, record_id: str) -> ToggleResult:
        if record_id not in self._ids:
            return ToggleResult(ids=self._ids, changed=False, max_size=self._max_size)
        return self.toggle(record_id)

    def clear(self) -> tuple[str, ...]:
        self._commit(())
        return self._ids

    def _commit(self, ids: tuple[str, ...]) -> None:
        try:
            write_json(self._store, self._key, list(ids))
        except PersistenceUnavailable:
            logger.warning("Could not persist %s; change kept for this session only", self._key, exc_info=True)
        self._ids = ids


class RecentlyViewed:
    """Most-recent-first list of viewed vehicles, capped at ``limit`` entries."""

    def __init__(
        self,
        store: KeyValueStore,
        limit: int = RECENT_LIMIT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._limit = limit
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: list[RecentView] = []

    @property
    def entries(self) -> list[RecentView]:
        return list(self._entries)

    def load(self) -> list[RecentView]:
        stored = read_json(self._store, RECENTLY_VIEWED_KEY, default=[])
        self._entries = list(self._parse(stored if isinstance(stored, list) else []))[: self._limit]
        return self.entries

    def add(self, record: VehicleRecord) -> list[RecentView]:
        entries = add_view(self._entries, record, self._clock(), self._limit)
        self._commit(entries)
        logger.info("Added to recently viewed: %s %s", record.make, record.model)
        return self.entries

    def clear(self) -> list[RecentView]:
        try:
            remove_key(self._store, RECENTLY_VIEWED_KEY)
        except PersistenceUnavailable:
            logger.warning("Could not clear recently viewed storage", exc_info=True)
        self._entries = []
        return self.entries

    def _commit(self, entries: list[RecentView]) -> None:
        try:
            write_json(self._store, RECENTLY_VIEWED_KEY, [entry.to_dict() for entry in entries])
        except PersistenceUnavailable:
            logger.warning("Could not persist recently viewed list", exc_info=True)
        self._entries = entries

    @staticmethod
    def _parse(stored: Iterable[Any]) -> Iterable[RecentView]:
        for entry in stored:
            if not isinstance(entry, dict):
                continue
            record = record_from_dict(entry)
            if record is None:
                continue
            try:
                viewed_at = datetime.fromisoformat(str(entry.get("viewedAt")))
            except ValueError:
                continue
            yield RecentView(record=record, viewed_at=viewed_at)
