"""
Domain errors raised by the booking engine.

Every error carries a human-readable message, a stable machine code and
the HTTP status the API layer renders it with.  Routers let these
propagate; a single exception handler in ``fieldbook.main`` turns them
into JSON responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class BookingError(Exception):
    """Base class for all expected booking failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "booking_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidSlot(BookingError):
    """The requested start time is not one of the generated slots."""

    status_code = HTTP_422_UNPROCESSABLE
    code = "invalid_slot"


class InvalidDuration(InvalidSlot):
    """The requested duration is not offered for this sport."""

    code = "invalid_duration"


class SlotConflict(BookingError):
    """The slot overlaps a reservation, a subscription, or breaks grid alignment."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ConfirmationExpired(BookingError):
    """The confirmation window closed; the reservation has been cancelled."""

    status_code = status.HTTP_410_GONE
    code = "expired"


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ReservationNotFound(NotFound):
    code = "reservation_not_found"


class FieldNotFound(NotFound):
    code = "field_not_found"


class SubscriptionNotFound(NotFound):
    code = "subscription_not_found"


class ContactBlocked(BookingError):
    """The abuse gate refused this customer."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "blocked"


class InvalidTransition(BookingError):
    """The requested status change is not allowed from the current status."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"
