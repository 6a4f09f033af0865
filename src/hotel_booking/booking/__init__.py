"""Booking availability, pricing and submission."""

from .availability import AvailabilityCheck, available_rooms, check_availability, stay_dates
from .errors import (
    AuthRequiredError,
    BookingError,
    BookingValidationError,
    InsufficientAvailabilityError,
    RoomNotFoundError,
)
from .models import Booking, BookingRequest, BookingStatus, PaymentProof, rooms_required
from .pricing import PaymentType, PricingBreakdown, calculate_pricing, gst_percent
from .service import AvailabilitySnapshot, BookingService, validate_request

__all__ = [
    "AuthRequiredError",
    "AvailabilityCheck",
    "AvailabilitySnapshot",
    "Booking",
    "BookingError",
    "BookingRequest",
    "BookingService",
    "BookingStatus",
    "BookingValidationError",
    "InsufficientAvailabilityError",
    "PaymentProof",
    "PaymentType",
    "PricingBreakdown",
    "RoomNotFoundError",
    "available_rooms",
    "calculate_pricing",
    "check_availability",
    "gst_percent",
    "rooms_required",
    "stay_dates",
    "validate_request",
]
