"""Booking flow: availability snapshot, validation, pricing and submission."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional

from hotel_booking.booking.availability import (
    AvailabilityCheck,
    check_availability,
    date_key,
    stay_dates,
)
from hotel_booking.booking.codes import generate_booking_code
from hotel_booking.booking.errors import (
    AuthRequiredError,
    BookingValidationError,
    InsufficientAvailabilityError,
    RoomNotFoundError,
)
from hotel_booking.booking.models import Booking, BookingRequest, PaymentProof
from hotel_booking.booking.pricing import PaymentType, PricingBreakdown, calculate_pricing
from hotel_booking.config.settings import Settings
from hotel_booking.rooms.models import RoomType
from hotel_booking.services.image_host import ImageHostClient, UploadError
from hotel_booking.session import UserSession
from hotel_booking.storage.document_store import (
    SERVER_TIMESTAMP,
    DocumentExistsError,
    Increment,
    PersistenceError,
    SqliteDocumentStore,
    Transaction,
)

logger = logging.getLogger(__name__)

ROOMS = "rooms"
BOOKINGS = "bookings"
BOOKING_CODES = "booking_codes"
USERS = "users"


def availability_collection(room_id: str) -> str:
    return f"{ROOMS}/{room_id}/availability"


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """Booked counts for one room type, read once when the booking flow opens."""

    room: RoomType
    booked_counts: Mapping[str, int]

    def check(self, request: BookingRequest) -> AvailabilityCheck:
        return check_availability(
            self.room.total_stock,
            self.booked_counts,
            request.check_in,
            request.check_out,
            request.rooms_count,
        )


def validate_request(
    request: BookingRequest,
    snapshot: AvailabilitySnapshot,
    *,
    today: Optional[date] = None,
) -> None:
    """Raise :class:`BookingValidationError` unless the stay can be booked."""
    if request.missing_fields():
        raise BookingValidationError("Please fill in all details")
    if request.room_id != snapshot.room.id:
        raise BookingValidationError("Availability snapshot belongs to a different room")
    today = today or date.today()
    if request.check_in < today:
        raise BookingValidationError("Check-in date cannot be in the past.")
    if request.check_out <= request.check_in:
        raise BookingValidationError("Check-out date must be after check-in date.")
    if request.adults < 1:
        raise BookingValidationError("At least one adult is required.")
    if request.children < 0:
        raise BookingValidationError("Children cannot be negative.")
    if request.rooms_count < 1:
        raise BookingValidationError("At least one room is required.")
    check = snapshot.check(request)
    if not check.ok:
        raise InsufficientAvailabilityError(check)


class BookingService:
    """Runs the multi-step booking flow against the document store and image host."""

    def __init__(
        self,
        store: SqliteDocumentStore,
        image_host: Optional[ImageHostClient] = None,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or Settings()
        self._store = store
        self._image_host = image_host
        self._default_stock = settings.default_room_stock
        self._currency = settings.currency
        self._code_attempts = settings.booking_code_attempts

    async def get_room(self, room_id: str) -> RoomType:
        data = await self._store.get(ROOMS, room_id)
        if data is None:
            raise RoomNotFoundError(room_id)
        return RoomType.from_document(room_id, data, default_stock=self._default_stock)

    async def open_booking(self, room_id: str) -> AvailabilitySnapshot:
        room = await self.get_room(room_id)
        documents = await self._store.list(availability_collection(room_id))
        booked = {doc.id: int(doc.data.get("booked_count") or 0) for doc in documents}
        logger.debug("Loaded %s booked nights for room %s", len(booked), room_id)
        return AvailabilitySnapshot(room=room, booked_counts=booked)

    def quote(
        self,
        request: BookingRequest,
        snapshot: AvailabilitySnapshot,
        payment_type: PaymentType | str = PaymentType.ADVANCE,
        *,
        today: Optional[date] = None,
    ) -> PricingBreakdown:
        validate_request(request, snapshot, today=today)
        return calculate_pricing(snapshot.room.nightly_price, request.rooms_count, request.nights, payment_type)

    async def submit(
        self,
        session: Optional[UserSession],
        request: BookingRequest,
        snapshot: AvailabilitySnapshot,
        screenshot: Optional[PaymentProof],
        payment_type: PaymentType | str = PaymentType.ADVANCE,
        *,
        today: Optional[date] = None,
    ) -> Booking:
        """Upload the payment proof, then reserve the nights and record the booking.

        Stock is re-checked against live counts inside the same transaction that
        increments them, so two guests racing for the last room cannot both win.
        """
        if session is None:
            raise AuthRequiredError()
        pricing = self.quote(request, snapshot, payment_type, today=today)
        if screenshot is None or not screenshot.content:
            raise BookingValidationError("Please upload the payment screenshot.")

        if self._image_host is None:
            raise UploadError("image host is not configured")
        screenshot_url = await self._image_host.upload(
            screenshot.content,
            filename=screenshot.filename,
            content_type=screenshot.content_type,
        )

        booking_id = uuid.uuid4().hex
        room = snapshot.room

        def _reserve(txn: Transaction) -> Booking:
            nights = stay_dates(request.check_in, request.check_out)
            collection = availability_collection(room.id)
            live: dict[str, int] = {}
            for night in nights:
                doc = txn.get(collection, date_key(night)) or {}
                live[date_key(night)] = int(doc.get("booked_count") or 0)
            check = check_availability(
                room.total_stock, live, request.check_in, request.check_out, request.rooms_count
            )
            if not check.ok:
                raise InsufficientAvailabilityError(check)

            booking = Booking(
                booking_id=booking_id,
                code=self._claim_code(txn, booking_id),
                session=session,
                request=request,
                room=room,
                pricing=pricing,
                screenshot_url=screenshot_url,
                currency=self._currency,
                created_at=txn.now,
            )
            txn.create(BOOKINGS, booking_id, booking.to_dict())
            for night in nights:
                txn.set(
                    collection,
                    date_key(night),
                    {"booked_count": Increment(request.rooms_count), "updated_at": SERVER_TIMESTAMP},
                    merge=True,
                )
            return booking

        booking = await self._store.run_transaction(_reserve)
        logger.info(
            "Booking %s (%s) reserved %s room(s) of %s for %s night(s)",
            booking.code,
            booking_id,
            request.rooms_count,
            room.id,
            request.nights,
        )
        await self._record_user_spend(session, pricing.total_price)
        return booking

    def _claim_code(self, txn: Transaction, booking_id: str) -> str:
        for attempt in range(1, self._code_attempts + 1):
            code = generate_booking_code()
            try:
                txn.create(BOOKING_CODES, code, {"booking_id": booking_id, "created_at": SERVER_TIMESTAMP})
            except DocumentExistsError:
                logger.warning("Booking code %s already taken (attempt %s)", code, attempt)
                continue
            return code
        raise PersistenceError(f"Could not allocate a unique booking code after {self._code_attempts} attempts")

    async def _record_user_spend(self, session: UserSession, total_price: int) -> None:
        try:
            await self._store.set(
                USERS,
                session.uid,
                {
                    "email": session.email,
                    "last_booking_at": SERVER_TIMESTAMP,
                    "bookings_count": Increment(1),
                    "total_spend": Increment(total_price),
                },
                merge=True,
            )
        except PersistenceError:
            logger.exception("Failed to update booking totals for user %s", session.uid)
