"""Deterministic display image selection for vehicles."""
from __future__ import annotations

from typing import Optional

from ..models import VehicleRecord
from .hashing import bucket


def _unsplash(photo_id: str) -> str:
    return f"https://images.unsplash.com/photo-{photo_id}?w=400&h=300&fit=crop&auto=format"


BRAND_IMAGES: dict[str, str] = {
    "toyota": _unsplash("1621007947382-bb3c3994e3fb"),
    "honda": _unsplash("1618843479313-40f8afb4b4d8"),
    "ford": _unsplash("1533473359331-0135ef1b58bf"),
    "chevrolet": _unsplash("1552519507-da3b142c6e3d"),
    "bmw": _unsplash("1555215695-3004980ad54e"),
    "mercedes": _unsplash("1618843479619-f3d0d81e3b84"),
    "audi": _unsplash("1606664515524-ed2f786a0bd6"),
    "volkswagen": _unsplash("1449824913935-59a10b8d2000"),
    "nissan": _unsplash("1605559424843-9e4c228bf1c2"),
    "hyundai": _unsplash("1502877338535-766e1452684a"),
    "kia": _unsplash("1549399736-4bd34277ce0e"),
    "subaru": _unsplash("1605559424843-9e4c228bf1c2"),
    "mazda": _unsplash("1542362567-b07e54358753"),
    "lexus": _unsplash("1563720360-3c5d50dceaf0"),
    "infiniti": _unsplash("1568605117036-5fe5e7bab0b7"),
    "acura": _unsplash("1568605117036-5fe5e7bab0b7"),
    "cadillac": _unsplash("1571068316344-75bc76f77890"),
    "lincoln": _unsplash("1571068316344-75bc76f77890"),
    "jeep": _unsplash("1533473359331-0135ef1b58bf"),
    "ram": _unsplash("1563720360-3c5d50dceaf0"),
    "gmc": _unsplash("1563720360-3c5d50dceaf0"),
}

TYPE_IMAGE_POOLS: dict[str, tuple[str, ...]] = {
    "suv": (
        _unsplash("1533473359331-0135ef1b58bf"),
        _unsplash("1602883571715-ad0c2e19c0e0"),
        _unsplash("1544636331-e26879cd4d9b"),
    ),
    "sedan": (
        _unsplash("1555215695-3004980ad54e"),
        _unsplash("1552519507-da3b142c6e3d"),
        _unsplash("1621007947382-bb3c3994e3fb"),
    ),
    "sport": (
        _unsplash("1568605117036-5fe5e7bab0b7"),
        _unsplash("1544636331-e26879cd4d9b"),
        _unsplash("1606664515524-ed2f786a0bd6"),
    ),
    "default": (
        _unsplash("1621007947382-bb3c3994e3fb"),
        _unsplash("1555215695-3004980ad54e"),
        _unsplash("1552519507-da3b142c6e3d"),
        _unsplash("1533473359331-0135ef1b58bf"),
        _unsplash("1618843479313-40f8afb4b4d8"),
    ),
}


def _pool_for(record: VehicleRecord) -> tuple[str, ...]:
    type_key = record.type.value.lower() if record.type else "default"
    return TYPE_IMAGE_POOLS.get(type_key, TYPE_IMAGE_POOLS["default"])


def resolve_image(record: Optional[VehicleRecord]) -> Optional[str]:
    """Return the display image URL for ``record``.

    A brand image wins when the make is in the table; otherwise an image is
    picked from the pool of the vehicle's type by a hash of make, model and
    year, so every screen shows the same picture for the same vehicle.
    """

    if record is None:
        return None

    brand_image = BRAND_IMAGES.get((record.make or "").lower())
    if brand_image:
        return brand_image

    pool = _pool_for(record)
    key = f"{record.make or ''}{record.model or ''}{record.year or ''}"
    return pool[bucket(key, len(pool))]


def resolve_image_set(record: Optional[VehicleRecord]) -> dict[str, str]:
    """Front, side and rear pool images plus the resolved main image."""

    if record is None:
        return {}

    pool = _pool_for(record)
    default_pool = TYPE_IMAGE_POOLS["default"]
    views = ("front", "side", "rear")
    images = {view: pool[index] if index < len(pool) else default_pool[index] for index, view in enumerate(views)}
    images["angle"] = resolve_image(record) or default_pool[0]
    return images
