"""Persisted user preferences."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import PersistenceUnavailable
from ..storage.repository import DARK_MODE_KEY, KeyValueStore, read_json, write_json

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PreferencesService:
    store: KeyValueStore

    def dark_mode(self) -> bool:
        """Stored dark-mode flag; light mode unless ``true`` was saved."""

        return read_json(self.store, DARK_MODE_KEY, default=False) is True

    def set_dark_mode(self, enabled: bool) -> bool:
        """Persist the flag and report whether the write succeeded."""

        try:
            write_json(self.store, DARK_MODE_KEY, bool(enabled))
        except PersistenceUnavailable:
            logger.warning("Error setting dark mode preference", exc_info=True)
            return False
        return True

    def toggle_dark_mode(self) -> bool:
        enabled = not self.dark_mode()
        self.set_dark_mode(enabled)
        return enabled
