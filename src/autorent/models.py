"""Domain models used throughout the AutoRent catalogue application."""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


class Category(str, Enum):
    """The fixed set of vehicle categories shown in the catalogue."""

    SUV = "SUV"
    SPORT = "Sport"
    SEDAN = "Sedan"

    @classmethod
    def parse(cls, value: Any) -> Optional[Category]:
        """Return the category named by ``value`` or ``None`` when it names none."""

        if isinstance(value, Category):
            return value
        if not isinstance(value, str):
            return None
        lowered = value.strip().lower()
        for category in cls:
            if lowered in (category.value.lower(), category.name.lower()):
                return category
        return None


ALL_CATEGORIES = "ALL"


@dataclass(slots=True)
class RawVehicle:
    """One entry of a car-data API response.

    Every field is optional; the API omits premium-only fields and sometimes
    returns partial entries.
    """

    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    vehicle_class: Optional[str] = None
    fuel_type: Optional[str] = None
    drive: Optional[str] = None
    transmission: Optional[str] = None
    cylinders: Optional[int] = None
    displacement: Optional[float] = None
    city_mpg: Optional[int] = None
    highway_mpg: Optional[int] = None
    combination_mpg: Optional[int] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> RawVehicle:
        return cls(
            make=_optional_str(payload.get("make")),
            model=_optional_str(payload.get("model")),
            year=_optional_int(payload.get("year")),
            vehicle_class=_optional_str(payload.get("class")),
            fuel_type=_optional_str(payload.get("fuel_type")),
            drive=_optional_str(payload.get("drive")),
            transmission=_optional_str(payload.get("transmission")),
            cylinders=_optional_int(payload.get("cylinders")),
            displacement=_optional_float(payload.get("displacement")),
            city_mpg=_optional_int(payload.get("city_mpg")),
            highway_mpg=_optional_int(payload.get("highway_mpg")),
            combination_mpg=_optional_int(payload.get("combination_mpg")),
        )

    @property
    def is_valid(self) -> bool:
        return bool(self.make) and bool(self.model)


@dataclass(frozen=True, slots=True)
class VehicleRecord:
    """A rentable vehicle with its derived id, daily price and category."""

    id: str
    make: str
    model: str
    price: int
    type: Category
    year: Optional[int] = None
    vehicle_class: Optional[str] = None
    fuel_type: Optional[str] = None
    drive: Optional[str] = None
    transmission: Optional[str] = None
    cylinders: Optional[int] = None
    displacement: Optional[float] = None
    city_mpg: Optional[int] = None
    highway_mpg: Optional[int] = None
    combination_mpg: Optional[int] = None

    @property
    def identity(self) -> tuple[str, str, Optional[int]]:
        """Key used to recognise the same vehicle across catalogue refreshes."""

        return (self.make, self.model, self.year)

    def to_dict(self) -> dict[str, Any]:
        """Serialise using the car-data API field names plus derived fields."""

        return {
            "id": self.id,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "class": self.vehicle_class,
            "fuel_type": self.fuel_type,
            "drive": self.drive,
            "transmission": self.transmission,
            "cylinders": self.cylinders,
            "displacement": self.displacement,
            "city_mpg": self.city_mpg,
            "highway_mpg": self.highway_mpg,
            "combination_mpg": self.combination_mpg,
            "price": self.price,
            "type": self.type.value,
        }


@dataclass(frozen=True, slots=True)
class CatalogueSnapshot:
    """Ordered, immutable collection of vehicle records."""

    records: tuple[VehicleRecord, ...] = ()

    @classmethod
    def of(cls, records: Iterable[VehicleRecord]) -> CatalogueSnapshot:
        return cls(records=tuple(records))

    def __iter__(self) -> Iterator[VehicleRecord]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def get(self, record_id: str) -> Optional[VehicleRecord]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def select(self, record_ids: Iterable[str]) -> list[VehicleRecord]:
        """Return the records for ``record_ids`` in the order of the ids.

        Ids with no matching record are skipped.
        """

        by_id = {record.id: record for record in self.records}
        return [by_id[record_id] for record_id in record_ids if record_id in by_id]

    def to_list(self) -> list[dict[str, Any]]:
        return [record.to_dict() for record in self.records]


@dataclass(frozen=True, slots=True)
class ToggleResult:
    """Outcome of toggling an id in a selection set."""

    ids: tuple[str, ...]
    changed: bool
    rejected: bool = False
    max_size: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.ids)

    @property
    def ready_to_compare(self) -> bool:
        """``True`` when a bounded set has just been filled to its limit."""

        return self.max_size is not None and self.size == self.max_size


@dataclass(frozen=True, slots=True)
class RecentView:
    """A vehicle snapshot stored in the recently viewed list."""

    record: VehicleRecord
    viewed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        payload = self.record.to_dict()
        payload["viewedAt"] = self.viewed_at.isoformat()
        return payload


@dataclass(frozen=True, slots=True)
class RentalPeriod:
    start_date: date
    end_date: date
    duration_days: int
    start_time: str = "10:00 AM"
    end_time: str = "10:00 AM"


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    daily_rate: int
    subtotal: int
    service_fee: int
    insurance: int

    @property
    def total(self) -> int:
        return self.subtotal + self.service_fee + self.insurance


@dataclass(frozen=True, slots=True)
class BookingQuote:
    """Demo rental terms offered for a vehicle before the booking is confirmed."""

    rental_period: RentalPeriod
    pickup_location: str
    price_breakdown: PriceBreakdown


@dataclass(slots=True)
class Review:
    """Star rating and optional text left when a trip is closed."""

    rating: int
    review: str = ""
    review_date: Optional[datetime] = None


@dataclass(slots=True)
class Booking:
    """A confirmed (simulated) rental."""

    id: str
    car: VehicleRecord
    quote: BookingQuote
    payment_method: str
    booking_date: datetime
    status: str = "confirmed"
    review: Optional[Review] = None
    completed_date: Optional[datetime] = None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
