"""Error classes raised by the catalogue core.

Nothing here is fatal: callers either surface the error with a retry action
(``FetchFailed``) or log it and continue with in-memory state
(``PersistenceUnavailable``).
"""
from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for all AutoRent errors."""

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a structured payload for the HTTP layer."""
        return {
            "message": self.message,
            "code": self.error_code,
            **self.context,
        }


class FetchFailed(DomainError):
    """The car-data API could not be reached or returned an unusable response.

    The underlying exception is kept on ``cause``. Fetches are never retried
    internally; the caller offers a manual retry.
    """

    error_code: str = "FETCH_FAILED"

    def __init__(self, message: str, cause: BaseException | None = None, **context: Any) -> None:
        self.cause = cause
        super().__init__(message, **context)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["retryable"] = True
        if self.cause is not None:
            payload["cause"] = str(self.cause)
        return payload


class PersistenceUnavailable(DomainError):
    """The persisted key-value store could not be written."""

    error_code: str = "PERSISTENCE_UNAVAILABLE"

    def __init__(self, key: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(f"Unable to persist '{key}'", key=key)


class BookingNotFound(DomainError):
    error_code: str = "NOT_FOUND"

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking with identifier '{booking_id}' not found", booking_id=booking_id)


class VehicleNotFound(DomainError):
    error_code: str = "NOT_FOUND"

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Vehicle with identifier '{record_id}' not found", record_id=record_id)
