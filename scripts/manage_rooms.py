"""Utility CLI for seeding room types and inspecting their per-night availability."""
from __future__ import annotations

import argparse
import asyncio
from datetime import date, timedelta
from pathlib import Path
from typing import Sequence

from hotel_booking.booking.availability import available_rooms, date_key, stay_dates
from hotel_booking.booking.service import ROOMS, BookingService
from hotel_booking.config.settings import Settings
from hotel_booking.core.logging import configure_logging
from hotel_booking.rooms import RoomCatalog, RoomType
from hotel_booking.storage import SqliteDocumentStore


def _format_room(room: RoomType) -> str:
    return f"{room.id:20} | {room.name:35} | {room.nightly_price:>8} | stock {room.total_stock}"


def _print_table(rooms: Sequence[RoomType]) -> None:
    for room in rooms:
        print(_format_room(room))


async def _seed(store: SqliteDocumentStore, catalog: RoomCatalog) -> None:
    for room in catalog.values():
        await store.set(ROOMS, room.id, room.to_document(), merge=True)
    print(f"Seeded {len(catalog)} room types from {catalog.source}")
    _print_table(list(catalog.values()))


async def _availability(service: BookingService, room_id: str, start: date, days: int) -> None:
    snapshot = await service.open_booking(room_id)
    print(_format_room(snapshot.room))
    for night in stay_dates(start, start + timedelta(days=days)):
        booked = snapshot.booked_counts.get(date_key(night), 0)
        free = available_rooms(snapshot.room.total_stock, booked)
        print(f"  {night:%a %d %b %Y} | booked {booked:>3} | free {free:>3}")


async def _run(args: argparse.Namespace, settings: Settings) -> None:
    store = SqliteDocumentStore(settings.sqlite_path, **settings.store_options())
    await store.initialize()
    try:
        if args.command == "seed":
            catalog = RoomCatalog.load(args.catalog, default_stock=settings.default_room_stock)
            await _seed(store, catalog)
        elif args.command == "list":
            documents = await store.list(ROOMS)
            _print_table(
                [RoomType.from_document(doc.id, doc.data, default_stock=settings.default_room_stock) for doc in documents]
            )
        elif args.command == "availability":
            service = BookingService(store, settings=settings)
            await _availability(service, args.room_id, args.start, args.days)
    finally:
        await store.close()


def main() -> None:
    settings = Settings()
    parser = argparse.ArgumentParser(description="Manage room types")
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed = subparsers.add_parser("seed", help="Write room types from a JSON catalog into the store")
    seed.add_argument("--catalog", type=Path, default=settings.room_catalog_path)

    subparsers.add_parser("list", help="List stored room types")

    availability = subparsers.add_parser("availability", help="Show per-night availability for a room")
    availability.add_argument("room_id")
    availability.add_argument("--start", type=date.fromisoformat, default=date.today())
    availability.add_argument("--days", type=int, default=14)

    args = parser.parse_args()
    configure_logging(settings.log_level, settings.log_dir)
    asyncio.run(_run(args, settings))


if __name__ == "__main__":
    main()
