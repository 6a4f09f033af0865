"""Validate a stay against current availability and print its price breakdown."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date

from hotel_booking.booking import (
    BookingRequest,
    BookingService,
    BookingValidationError,
    PaymentType,
)
from hotel_booking.config.settings import Settings
from hotel_booking.core.logging import configure_logging
from hotel_booking.storage import SqliteDocumentStore


async def _quote(args: argparse.Namespace, settings: Settings) -> int:
    store = SqliteDocumentStore(settings.sqlite_path, **settings.store_options())
    await store.initialize()
    try:
        service = BookingService(store, settings=settings)
        snapshot = await service.open_booking(args.room_id)
        request = BookingRequest(
            room_id=args.room_id,
            check_in=args.check_in,
            check_out=args.check_out,
            rooms_count=args.rooms,
            guest_name=args.name,
            guest_phone=args.phone,
        ).with_adults(args.adults)
        try:
            pricing = service.quote(request, snapshot, args.payment)
        except BookingValidationError as exc:
            print(f"Not bookable: {exc}", file=sys.stderr)
            return 1
    finally:
        await store.close()

    print(json.dumps({"room": snapshot.room.name, "rooms": request.rooms_count, **pricing.to_dict()}, indent=2))
    return 0


def main() -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(description="Quote a stay")
    parser.add_argument("room_id")
    parser.add_argument("check_in", type=date.fromisoformat)
    parser.add_argument("check_out", type=date.fromisoformat)
    parser.add_argument("--rooms", type=int, default=1)
    parser.add_argument("--adults", type=int, default=1)
    parser.add_argument("--payment", choices=[item.value for item in PaymentType], default=PaymentType.ADVANCE.value)
    parser.add_argument("--name", default="Walk-in guest")
    parser.add_argument("--phone", default="-")
    args = parser.parse_args()

    configure_logging(settings.log_level, settings.log_dir)
    sys.exit(asyncio.run(_quote(args, settings)))


if __name__ == "__main__":
    main()
