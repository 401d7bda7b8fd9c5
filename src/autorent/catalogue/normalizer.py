"""Conversion of raw API entries and cached payloads into ``VehicleRecord``s."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from ..models import CatalogueSnapshot, Category, RawVehicle, VehicleRecord
from .classification import classify
from .pricing import price

logger = logging.getLogger(__name__)


def record_id(raw: RawVehicle, index: int) -> str:
    year = raw.year if raw.year is not None else "undefined"
    return f"{raw.make}-{raw.model}-{year}-{index}"


def normalize(raw: RawVehicle, index: int, current_year: Optional[int] = None) -> VehicleRecord:
    """Derive id, price and category for one API entry."""

    return VehicleRecord(
        id=record_id(raw, index),
        make=raw.make or "",
        model=raw.model or "",
        year=raw.year,
        vehicle_class=raw.vehicle_class,
        fuel_type=raw.fuel_type,
        drive=raw.drive,
        transmission=raw.transmission,
        cylinders=raw.cylinders,
        displacement=raw.displacement,
        city_mpg=raw.city_mpg,
        highway_mpg=raw.highway_mpg,
        combination_mpg=raw.combination_mpg,
        price=price(raw.vehicle_class, raw.year, raw.cylinders, current_year=current_year),
        type=classify(raw.make, raw.model, raw.vehicle_class),
    )


def normalize_batch(raw_vehicles: Iterable[RawVehicle], current_year: Optional[int] = None) -> CatalogueSnapshot:
    """Normalize a fetched batch; the position in the batch keeps ids unique."""

    valid = [raw for raw in raw_vehicles if raw.is_valid]
    return CatalogueSnapshot.of(normalize(raw, index, current_year) for index, raw in enumerate(valid))


def record_from_dict(payload: Mapping[str, Any]) -> Optional[VehicleRecord]:
    """Rebuild a record from its persisted form.

    Returns ``None`` for entries that lack an id, make or model. The stored
    ``id`` and ``price`` are kept as-is; an unrecognised ``type`` is derived
    again from the vehicle's text fields.
    """

    raw = RawVehicle.from_mapping(payload)
    stored_id = payload.get("id")
    if not raw.is_valid or not isinstance(stored_id, str) or not stored_id:
        return None

    stored_price = payload.get("price")
    if isinstance(stored_price, bool) or not isinstance(stored_price, (int, float)) or stored_price <= 0:
        stored_price = price(raw.vehicle_class, raw.year, raw.cylinders)

    category = Category.parse(payload.get("type")) or classify(raw.make, raw.model, raw.vehicle_class)
    return VehicleRecord(
        id=stored_id,
        make=raw.make or "",
        model=raw.model or "",
        year=raw.year,
        vehicle_class=raw.vehicle_class,
        fuel_type=raw.fuel_type,
        drive=raw.drive,
        transmission=raw.transmission,
        cylinders=raw.cylinders,
        displacement=raw.displacement,
        city_mpg=raw.city_mpg,
        highway_mpg=raw.highway_mpg,
        combination_mpg=raw.combination_mpg,
        price=int(stored_price),
        type=category,
    )


def snapshot_from_list(payload: Any) -> CatalogueSnapshot:
    """Rebuild a snapshot from a persisted JSON array, skipping bad entries."""

    if not isinstance(payload, list):
        return CatalogueSnapshot()

    records: list[VehicleRecord] = []
    for entry in payload:
        record = record_from_dict(entry) if isinstance(entry, Mapping) else None
        if record is None:
            logger.warning("Skipping malformed cached vehicle entry: %r", entry)
            continue
        records.append(record)
    return CatalogueSnapshot.of(records)
