"""Explicit construction of the services shared by the application."""
from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..api.client import CarDataClient
from ..config import AppConfig
from ..storage.repository import JsonFileStore, KeyValueStore
from .booking_service import BookingService
from .catalogue_service import CatalogueStore
from .preferences_service import PreferencesService
from .selection_service import RecentlyViewed, SelectionSet


@dataclass(slots=True)
class AppServices:
    """Everything a front end needs, wired once by the application root."""

    client: CarDataClient
    catalogue: CatalogueStore
    favorites: SelectionSet
    compare: SelectionSet
    recently_viewed: RecentlyViewed
    bookings: BookingService
    preferences: PreferencesService

    def load_selections(self) -> None:
        self.favorites.load()
        self.compare.load()
        self.recently_viewed.load()


def build_services(
    config: AppConfig,
    store: KeyValueStore | None = None,
    client: CarDataClient | None = None,
    rng: random.Random | None = None,
    clock: Callable[[], datetime] | None = None,
) -> AppServices:
    """Create and wire the services for ``config``.

    ``store``, ``client``, ``rng`` and ``clock`` replace the defaults so tests
    can run without the network or the file system.
    """

    if store is None:
        config.ensure_data_directories()
        store = JsonFileStore(config.storage_directory)
    if client is None:
        client = CarDataClient(
            api_base_url=config.api.base_url,
            api_key=config.api.api_key,
            timeout=config.api.timeout_seconds,
            popular_models=config.catalogue.popular_models,
        )
    rng = rng or random.Random()

    services = AppServices(
        client=client,
        catalogue=CatalogueStore(client, store, batch_size=config.catalogue.batch_size, rng=rng),
        favorites=SelectionSet.favorites(store),
        compare=SelectionSet.compare_list(store, limit=config.catalogue.compare_limit),
        recently_viewed=RecentlyViewed(store, limit=config.catalogue.recent_limit, clock=clock),
        bookings=BookingService(store, rng=rng, clock=clock),
        preferences=PreferencesService(store),
    )
    services.load_selections()
    return services
