"""Flask application exposing the catalogue core over JSON."""
from __future__ import annotations

from typing import Any

from flask import Flask, jsonify, request

from ..catalogue.images import resolve_image, resolve_image_set
from ..config import DEFAULT_CONFIG, AppConfig
from ..errors import BookingNotFound, DomainError, FetchFailed, PersistenceUnavailable, VehicleNotFound
from ..models import ALL_CATEGORIES, VehicleRecord
from ..services.booking_service import booking_to_dict, estimate_rating
from ..services.registry import AppServices, build_services

SEARCH_PARAMS = ("make", "model", "year", "fuel_type", "drive", "transmission", "cylinders")


def create_app(services: AppServices) -> Flask:
    app = Flask(__name__)
    app.config["services"] = services

    catalogue = services.catalogue
    favorites = services.favorites
    compare = services.compare

    def _car_payload(record: VehicleRecord) -> dict[str, Any]:
        payload = record.to_dict()
        payload["image"] = resolve_image(record)
        payload["rating"] = estimate_rating(record)
        payload["isFavorite"] = record.id in favorites
        payload["inCompare"] = record.id in compare
        return payload

    def _compare_payload() -> dict[str, Any]:
        catalogue.load_or_fetch()
        return {
            "ids": list(compare.ids),
            "limit": compare.max_size,
            "cars": [_car_payload(record) for record in catalogue.select(compare.ids)],
        }

    @app.errorhandler(FetchFailed)
    def handle_fetch_failed(exc: FetchFailed):
        app.logger.warning("Catalogue fetch failed: %s", exc.cause or exc)
        return jsonify(exc.to_dict()), 502

    @app.errorhandler(VehicleNotFound)
    @app.errorhandler(BookingNotFound)
    def handle_not_found(exc: DomainError):
        return jsonify(exc.to_dict()), 404

    @app.errorhandler(PersistenceUnavailable)
    def handle_persistence_unavailable(exc: PersistenceUnavailable):
        app.logger.error("Storage unavailable: %s", exc.cause or exc)
        return jsonify(exc.to_dict()), 503

    @app.route("/health")
    def health():
        api_status = services.client.health_check()
        return jsonify(
            {
                "ok": True,
                "api": {
                    "ok": api_status["ok"],
                    "checked_at": api_status["checked_at"].isoformat(),
                    "error": api_status.get("error"),
                },
            }
        )

    @app.route("/api/cars")
    def list_cars():
        snapshot = catalogue.load_or_fetch()
        query = request.args.get("q", "")
        category = request.args.get("type") or ALL_CATEGORIES
        filtered = catalogue.filter(query, category, snapshot=snapshot)
        return jsonify(
            {
                "total": len(snapshot),
                "count": len(filtered),
                "types": catalogue.type_distribution(snapshot),
                "cars": [_car_payload(record) for record in filtered],
            }
        )

    @app.route("/api/cars/refresh", methods=["POST"])
    def refresh_cars():
        count = request.args.get("count", type=int)
        snapshot = catalogue.refresh(count)
        return jsonify({"total": len(snapshot), "cars": [_car_payload(record) for record in snapshot]})

    @app.route("/api/cars/search")
    def search_cars():
        params = {key: value for key, value in request.args.items() if key in SEARCH_PARAMS and value}
        if not params:
            message = f"Provide at least one of: {', '.join(SEARCH_PARAMS)}"
            return jsonify({"message": message, "code": "VALIDATION_ERROR"}), 422
        results = catalogue.search(params)
        return jsonify({"params": params, "count": len(results), "cars": [_car_payload(record) for record in results]})

    @app.route("/api/cars/<record_id>")
    def car_details(record_id: str):
        catalogue.load_or_fetch()
        record = catalogue.get(record_id)
        services.recently_viewed.add(record)
        payload = _car_payload(record)
        payload["images"] = resolve_image_set(record)
        return jsonify(payload)

    @app.route("/api/cars/<record_id>/quote")
    def car_quote(record_id: str):
        catalogue.load_or_fetch()
        quote = services.bookings.quote(catalogue.get(record_id))
        period = quote.rental_period
        breakdown = quote.price_breakdown
        return jsonify(
            {
                "startDate": period.start_date.isoformat(),
                "endDate": period.end_date.isoformat(),
                "duration": period.duration_days,
                "pickupLocation": quote.pickup_location,
                "dailyRate": breakdown.daily_rate,
                "serviceFee": breakdown.service_fee,
                "insurance": breakdown.insurance,
                "total": breakdown.total,
            }
        )

    @app.route("/api/favorites")
    def list_favorites():
        catalogue.load_or_fetch()
        return jsonify(
            {
                "ids": list(favorites.ids),
                "cars": [_car_payload(record) for record in catalogue.select(favorites.ids)],
            }
        )

    @app.route("/api/favorites/<record_id>/toggle", methods=["POST"])
    def toggle_favorite(record_id: str):
        result = favorites.toggle(record_id)
        return jsonify({"ids": list(result.ids), "changed": result.changed, "isFavorite": record_id in favorites})

    @app.route("/api/favorites", methods=["DELETE"])
    def clear_favorites():
        return jsonify({"ids": list(favorites.clear())})

    @app.route("/api/compare")
    def list_compare():
        return jsonify(_compare_payload())

    @app.route("/api/compare/<record_id>/toggle", methods=["POST"])
    def toggle_compare(record_id: str):
        result = compare.toggle(record_id)
        payload: dict[str, Any] = {
            "ids": list(result.ids),
            "changed": result.changed,
            "rejected": result.rejected,
            "showComparison": result.changed and result.ready_to_compare,
        }
        if result.rejected:
            payload["message"] = compare.limit_notice
        return jsonify(payload)

    @app.route("/api/compare/<record_id>", methods=["DELETE"])
    def remove_from_compare(record_id: str):
        result = compare.remove(record_id)
        return jsonify({"ids": list(result.ids), "changed": result.changed})

    @app.route("/api/compare", methods=["DELETE"])
    def clear_compare():
        return jsonify({"ids": list(compare.clear())})

    @app.route("/api/recent")
    def list_recent():
        return jsonify({"cars": [entry.to_dict() for entry in services.recently_viewed.entries]})

    @app.route("/api/recent", methods=["DELETE"])
    def clear_recent():
        services.recently_viewed.clear()
        return jsonify({"cars": []})

    @app.route("/api/bookings")
    def list_bookings():
        bookings = services.bookings.history()
        active = services.bookings.active_booking()
        return jsonify(
            {
                "bookings": [booking_to_dict(booking) for booking in bookings],
                "active": booking_to_dict(active) if active else None,
                "totalTrips": services.bookings.total_trips(),
            }
        )

    @app.route("/api/bookings", methods=["POST"])
    def create_booking():
        data = request.get_json(silent=True) or {}
        record_id = data.get("car_id")
        if not record_id:
            return jsonify({"message": "car_id is required", "code": "VALIDATION_ERROR"}), 422
        catalogue.load_or_fetch()
        record = catalogue.get(record_id)
        quote = services.bookings.quote(record)
        booking = services.bookings.confirm(record, quote, payment_method=data.get("payment_method") or "card")
        return jsonify(booking_to_dict(booking)), 201

    @app.route("/api/bookings/<booking_id>/complete", methods=["POST"])
    def complete_booking(booking_id: str):
        data = request.get_json(silent=True) or {}
        try:
            rating = int(data.get("rating", 5))
        except (TypeError, ValueError):
            return jsonify({"message": "rating must be an integer", "code": "VALIDATION_ERROR"}), 422
        review = data.get("review", data.get("comment", ""))
        booking = services.bookings.complete(booking_id, rating, str(review or ""))
        return jsonify(booking_to_dict(booking))

    @app.route("/api/preferences/dark-mode")
    def get_dark_mode():
        return jsonify({"darkMode": services.preferences.dark_mode()})

    @app.route("/api/preferences/dark-mode", methods=["POST"])
    def set_dark_mode():
        data = request.get_json(silent=True) or {}
        if "darkMode" in data:
            services.preferences.set_dark_mode(bool(data["darkMode"]))
            enabled = services.preferences.dark_mode()
        else:
            enabled = services.preferences.toggle_dark_mode()
        return jsonify({"darkMode": enabled})

    return app


def bootstrap_app(config: AppConfig | None = None) -> tuple[Flask, AppServices]:
    """Factory used by the entrypoint for running the API."""

    config = config or DEFAULT_CONFIG
    services = build_services(config)
    app = create_app(services)
    return app, services
