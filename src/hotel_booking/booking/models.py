"""Dataclasses describing booking requests and stored bookings."""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, List, Optional

from hotel_booking.booking.pricing import PaymentType, PricingBreakdown
from hotel_booking.rooms.models import RoomType
from hotel_booking.session import UserSession

ADULTS_PER_ROOM = 3
PAYMENT_METHOD = "upi_qr_manual"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class PaymentStatus(str, enum.Enum):
    VERIFICATION_PENDING = "verification_pending"
    VERIFIED = "verified"


def rooms_required(adults: int) -> int:
    """Minimum rooms for ``adults`` guests at three adults per room."""
    return max(1, math.ceil(adults / ADULTS_PER_ROOM))


@dataclass(slots=True)
class BookingRequest:
    """A stay the guest is filling in; lives only for the duration of the flow."""

    room_id: str
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    adults: int = 1
    children: int = 0
    rooms_count: int = 1
    guest_name: str = ""
    guest_phone: str = ""

    @property
    def nights(self) -> int:
        if not self.check_in or not self.check_out:
            return 0
        return max(0, (self.check_out - self.check_in).days)

    def missing_fields(self) -> List[str]:
        missing: List[str] = []
        if not self.check_in:
            missing.append("check_in")
        if not self.check_out:
            missing.append("check_out")
        if not self.guest_name.strip():
            missing.append("guest_name")
        if not self.guest_phone.strip():
            missing.append("guest_phone")
        return missing

    def with_adults(self, adults: int) -> "BookingRequest":
        """Return a copy for ``adults`` guests, adding rooms if they no longer fit."""
        adults = max(1, adults)
        return replace(self, adults=adults, rooms_count=max(self.rooms_count, rooms_required(adults)))


@dataclass(frozen=True, slots=True)
class PaymentProof:
    """Payment screenshot supplied by the guest before it is uploaded."""

    content: bytes
    filename: str = "payment.jpg"
    content_type: str = "image/jpeg"


@dataclass(slots=True)
class Booking:
    """Booking record as written to the ``bookings`` collection."""

    booking_id: str
    code: str
    session: UserSession
    request: BookingRequest
    room: RoomType
    pricing: PricingBreakdown
    screenshot_url: str
    currency: str = "INR"
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.VERIFICATION_PENDING
    created_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        request = self.request
        payment = {
            "method": PAYMENT_METHOD,
            **self.pricing.to_dict(),
            "currency": self.currency,
            "status": self.payment_status.value,
            "screenshot_url": self.screenshot_url,
        }
        return {
            "booking_id": self.booking_id,
            "code": self.code,
            "user_id": self.session.uid,
            "user_email": self.session.email,
            "guest": {
                "user_id": self.session.uid,
                "name": request.guest_name,
                "email": self.session.email,
                "phone": request.guest_phone,
            },
            "stay": {
                "check_in": request.check_in.isoformat() if request.check_in else "",
                "check_out": request.check_out.isoformat() if request.check_out else "",
                "total_nights": request.nights or 1,
                "adults": request.adults,
                "children": request.children,
                "rooms_count": request.rooms_count,
            },
            "room": {
                "id": self.room.id,
                "name": self.room.name,
                "image": self.room.image,
                "base_price_per_night": self.room.nightly_price,
            },
            "payment": payment,
            "status": self.status.value,
            "created_at": self.created_at,
        }


__all__ = [
    "ADULTS_PER_ROOM",
    "Booking",
    "BookingRequest",
    "BookingStatus",
    "PaymentProof",
    "PaymentStatus",
    "PaymentType",
    "rooms_required",
]
