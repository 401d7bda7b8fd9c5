"""Client for the API Ninjas car-data API."""
from __future__ import annotations

import logging
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import requests

from ..config import POPULAR_CAR_MODELS
from ..errors import FetchFailed
from ..models import RawVehicle

logger = logging.getLogger(__name__)

PREMIUM_ONLY_PARAMS = ("limit", "offset")


@dataclass(slots=True)
class CarDataClient:
    """Handles communication with the ``/cars`` endpoint.

    The free tier answers one vehicle per request and rejects the paging
    parameters, so a multi-vehicle catalogue is assembled from one request
    per model name.
    """

    api_base_url: str
    api_key: str
    timeout: int = 10
    popular_models: Sequence[str] = POPULAR_CAR_MODELS

    def build_headers(self) -> dict[str, str]:
        """Return the HTTP headers required by the API."""

        return {"X-Api-Key": self.api_key}

    def fetch_car_data(self, params: Mapping[str, Any] | None = None) -> list[RawVehicle]:
        """Fetch vehicles matching ``params``.

        Entries that are not objects or lack a make or model are dropped.

        Raises:
            FetchFailed: on network errors, non-2xx responses or a body that is
                not JSON.
        """

        query = {key: value for key, value in (params or {}).items() if key not in PREMIUM_ONLY_PARAMS}
        endpoint = f"{self.api_base_url.rstrip('/')}/cars"
        logger.debug("Fetching %s with params %s", endpoint, query)

        try:
            response = requests.get(
                endpoint,
                headers=self.build_headers(),
                params=query,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Car data request for %s failed: %s", query, exc)
            raise FetchFailed("Failed to fetch car data", cause=exc, params=dict(query)) from exc

        return self._extract_vehicles(payload)

    def _extract_vehicles(self, payload: Any) -> list[RawVehicle]:
        """Accept a list of entries or a single entry and drop empty ones."""

        if isinstance(payload, Mapping):
            candidates: list[Any] = [payload]
        elif isinstance(payload, list):
            candidates = payload
        else:
            return []

        vehicles: list[RawVehicle] = []
        for candidate in candidates:
            if not isinstance(candidate, Mapping) or not candidate:
                continue
            vehicle = RawVehicle.from_mapping(candidate)
            if vehicle.is_valid:
                vehicles.append(vehicle)
        return vehicles

    def fetch_random_cars(self, count: int, rng: random.Random | None = None) -> list[RawVehicle]:
        """Fetch vehicles for ``count`` distinct popular models chosen at random."""

        rng = rng or random.Random()
        selected = rng.sample(list(self.popular_models), min(max(count, 0), len(self.popular_models)))
        logger.info("Fetching cars for models: %s", ", ".join(selected))

        vehicles: list[RawVehicle] = []
        for model in selected:
            vehicles.extend(self.fetch_car_data({"model": model}))
        return vehicles

    def search_cars(self, params: Mapping[str, Any]) -> list[RawVehicle]:
        return self.fetch_car_data(params)

    def health_check(self) -> dict[str, Any]:
        """Perform a lightweight request to ensure the API is reachable."""

        try:
            self.fetch_car_data({"model": "camry"})
            return {"ok": True, "checked_at": datetime.now(UTC)}
        except FetchFailed as exc:
            return {"ok": False, "error": str(exc.cause or exc), "checked_at": datetime.now(UTC)}
