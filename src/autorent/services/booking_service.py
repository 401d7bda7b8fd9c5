"""Simulated booking flow and booking history."""
from __future__ import annotations

import json
import logging
import random
import uuid
from collections.abc import Callable, Mapping
from datetime import UTC, date, datetime, timedelta
from typing import Any, Optional

from ..catalogue.normalizer import record_from_dict
from ..errors import BookingNotFound, PersistenceUnavailable
from ..models import Booking, BookingQuote, PriceBreakdown, RentalPeriod, Review, VehicleRecord
from ..storage.repository import BOOKINGS_KEY, KeyValueStore, read_json, write_json

logger = logging.getLogger(__name__)

PICKUP_LOCATIONS: tuple[str, ...] = (
    "Universității nr. 1, Oradea, 410087, Bihor",
    "Strada Republicii nr. 15, Cluj-Napoca, 400015, Cluj",
    "Bulevardul Unirii nr. 12, București, 030167, Bucharest",
    "Strada Memorandului nr. 28, Timișoara, 300134, Timiș",
    "Piața Unirii nr. 9, Iași, 700056, Iași",
)

ACTIVE_STATUSES = ("in progress", "confirmed")
TRIP_STATUSES = ("completed", "in progress", "closed")


def estimate_rating(record: VehicleRecord) -> float:
    """Demo star rating derived from the vehicle's specs."""

    rating = 4.0
    if record.year and record.year > 2018:
        rating += 0.3
    if (record.fuel_type or "").lower() in ("electricity", "electric"):
        rating += 0.4
    if record.cylinders and record.cylinders >= 6:
        rating += 0.2
    if "luxury" in (record.vehicle_class or "").lower():
        rating += 0.3
    return round(min(5.0, rating), 1)


class BookingService:
    """Creates demo booking quotes and keeps the persisted booking history.

    All random draws come from ``rng`` so a seeded generator reproduces a
    quote exactly.
    """

    def __init__(
        self,
        store: KeyValueStore,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(UTC))

    def quote(self, record: VehicleRecord) -> BookingQuote:
        today = self._clock().date()
        start_date = today + timedelta(days=self._rng.randint(1, 30))
        duration = self._rng.randint(1, 7)
        pickup_location = self._rng.choice(PICKUP_LOCATIONS)
        service_fee = self._rng.randint(15, 44)
        insurance = self._rng.randint(20, 44)

        return BookingQuote(
            rental_period=RentalPeriod(
                start_date=start_date,
                end_date=start_date + timedelta(days=duration),
                duration_days=duration,
            ),
            pickup_location=pickup_location,
            price_breakdown=PriceBreakdown(
                daily_rate=record.price,
                subtotal=record.price * duration,
                service_fee=service_fee,
                insurance=insurance,
            ),
        )

    def confirm(self, record: VehicleRecord, quote: BookingQuote, payment_method: str = "card") -> Booking:
        """Append a confirmed booking to the stored history.

        Raises:
            PersistenceUnavailable: when the stored history cannot be read, so
                it is not overwritten.
        """

        booking = Booking(
            id=uuid.uuid4().hex,
            car=record,
            quote=quote,
            payment_method=payment_method,
            booking_date=self._clock(),
        )
        entries = self._stored_entries()
        entries.append(booking_to_dict(booking))
        self._save(entries)
        logger.info("Booking %s saved; %s bookings stored", booking.id, len(entries))
        return booking

    def history(self) -> list[Booking]:
        """Return the readable bookings; unreadable entries are skipped, not removed."""

        stored = read_json(self._store, BOOKINGS_KEY, default=[])
        if not isinstance(stored, list):
            return []
        bookings: list[Booking] = []
        for entry in stored:
            booking = booking_from_dict(entry) if isinstance(entry, Mapping) else None
            if booking is None:
                logger.warning("Skipping unreadable booking entry %r", _entry_id(entry))
                continue
            bookings.append(booking)
        return bookings

    def active_booking(self) -> Optional[Booking]:
        for booking in self.history():
            if booking.status in ACTIVE_STATUSES:
                return booking
        return None

    def total_trips(self) -> int:
        return sum(1 for booking in self.history() if booking.status in TRIP_STATUSES)

    def complete(self, booking_id: str, rating: int, review: str = "") -> Booking:
        """Close a trip with the customer's review.

        Only the matching entry is rewritten; every other stored entry is kept
        exactly as it was.
        """

        entries = self._stored_entries()
        for index, entry in enumerate(entries):
            if _entry_id(entry) != booking_id:
                continue
            now = self._clock()
            closing_review = Review(rating=max(1, min(5, int(rating))), review=review, review_date=now)
            updated = {
                **entry,
                "status": "closed",
                "review": review_to_dict(closing_review),
                "completedDate": now.isoformat(),
            }
            booking = booking_from_dict(updated)
            if booking is None:
                continue
            entries[index] = updated
            self._save(entries)
            return booking
        raise BookingNotFound(booking_id)

    def _stored_entries(self) -> list[Any]:
        try:
            raw = self._store.get(BOOKINGS_KEY)
        except OSError as exc:
            raise PersistenceUnavailable(BOOKINGS_KEY, cause=exc) from exc
        if raw is None:
            return []
        try:
            stored = json.loads(raw)
        except ValueError as exc:
            raise PersistenceUnavailable(BOOKINGS_KEY, cause=exc) from exc
        if not isinstance(stored, list):
            raise PersistenceUnavailable(BOOKINGS_KEY, cause=ValueError("stored bookings are not a list"))
        return stored

    def _save(self, entries: list[Any]) -> None:
        try:
            write_json(self._store, BOOKINGS_KEY, entries)
        except PersistenceUnavailable:
            logger.warning("Booking history not persisted", exc_info=True)


def _entry_id(entry: Any) -> Optional[str]:
    if not isinstance(entry, Mapping) or entry.get("id") is None:
        return None
    return str(entry["id"])


def _parse_date(value: Any) -> date:
    # Older entries store full ISO timestamps instead of plain dates.
    text = str(value)
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text).date()


def review_to_dict(review: Review) -> dict[str, Any]:
    return {
        "rating": review.rating,
        "review": review.review,
        "reviewDate": review.review_date.isoformat() if review.review_date else None,
    }


def review_from_dict(payload: Any) -> Optional[Review]:
    if not isinstance(payload, Mapping):
        return None
    reviewed = payload.get("reviewDate")
    return Review(
        rating=int(payload["rating"]),
        review=str(payload.get("review") or ""),
        review_date=datetime.fromisoformat(reviewed) if reviewed else None,
    )


def booking_to_dict(booking: Booking) -> dict[str, Any]:
    period = booking.quote.rental_period
    breakdown = booking.quote.price_breakdown
    return {
        "id": booking.id,
        "car": booking.car.to_dict(),
        "rentalPeriod": {
            "startDate": period.start_date.isoformat(),
            "endDate": period.end_date.isoformat(),
            "duration": period.duration_days,
            "startTime": period.start_time,
            "endTime": period.end_time,
        },
        "pickupLocation": booking.quote.pickup_location,
        "priceBreakdown": {
            "dailyRate": breakdown.daily_rate,
            "subtotal": breakdown.subtotal,
            "serviceFee": breakdown.service_fee,
            "insurance": breakdown.insurance,
            "total": breakdown.total,
        },
        "paymentMethod": booking.payment_method,
        "bookingDate": booking.booking_date.isoformat(),
        "status": booking.status,
        "review": review_to_dict(booking.review) if booking.review else None,
        "completedDate": booking.completed_date.isoformat() if booking.completed_date else None,
    }


def booking_from_dict(payload: Mapping[str, Any]) -> Optional[Booking]:
    """Parse a stored booking, or return ``None`` when it cannot be read.

    ``subtotal`` may be absent from the price breakdown; it is then derived
    from the daily rate and the duration.
    """

    car_payload = payload.get("car")
    car = record_from_dict(car_payload) if isinstance(car_payload, Mapping) else None
    if car is None:
        return None
    try:
        period = payload["rentalPeriod"]
        breakdown = payload["priceBreakdown"]
        duration = int(period["duration"])
        daily_rate = int(breakdown["dailyRate"])
        subtotal = breakdown.get("subtotal")
        quote = BookingQuote(
            rental_period=RentalPeriod(
                start_date=_parse_date(period["startDate"]),
                end_date=_parse_date(period["endDate"]),
                duration_days=duration,
                start_time=period.get("startTime", "10:00 AM"),
                end_time=period.get("endTime", "10:00 AM"),
            ),
            pickup_location=str(payload.get("pickupLocation", "")),
            price_breakdown=PriceBreakdown(
                daily_rate=daily_rate,
                subtotal=int(subtotal) if subtotal is not None else daily_rate * duration,
                service_fee=int(breakdown["serviceFee"]),
                insurance=int(breakdown["insurance"]),
            ),
        )
        completed = payload.get("completedDate")
        return Booking(
            id=str(payload["id"]),
            car=car,
            quote=quote,
            payment_method=str(payload.get("paymentMethod", "card")),
            booking_date=datetime.fromisoformat(payload["bookingDate"]),
            status=str(payload.get("status", "confirmed")),
            review=review_from_dict(payload.get("review")),
            completed_date=datetime.fromisoformat(completed) if completed else None,
        )
    except (KeyError, TypeError, ValueError, AttributeError):
        return None
