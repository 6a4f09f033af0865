"""Exceptions raised by the booking flow."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from hotel_booking.booking.availability import AvailabilityCheck


class BookingError(RuntimeError):
    """Base class for booking flow failures."""


class BookingValidationError(BookingError):
    """Raised when a request fails local validation; nothing has been written."""


class InsufficientAvailabilityError(BookingValidationError):
    """Raised when a night in the stay has fewer free rooms than requested."""

    def __init__(self, check: "AvailabilityCheck") -> None:
        super().__init__(check.message())
        self.check = check


class RoomNotFoundError(BookingError):
    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room '{room_id}' does not exist")
        self.room_id = room_id


class AuthRequiredError(BookingError):
    """Raised when a booking is attempted without a signed-in user.

    Callers route the user into sign-in and resume with the same request.
    """

    def __init__(self) -> None:
        super().__init__("Sign in to complete your booking")
