"""Room catalog helpers."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Mapping

from hotel_booking.rooms.models import DEFAULT_TOTAL_STOCK, RoomType


class RoomCatalog:
    """Loads room type metadata from disk."""

    def __init__(self, rooms: Mapping[str, RoomType], *, source: Path) -> None:
        self._rooms = rooms
        self._source = source

    @property
    def source(self) -> Path:
        return self._source

    def get(self, room_id: str) -> RoomType:
        try:
            return self._rooms[room_id]
        except KeyError as exc:
            known = ", ".join(sorted(self._rooms))
            raise KeyError(f"Room '{room_id}' not found in catalog {self._source}. Known ids: {known}") from exc

    def values(self) -> Iterable[RoomType]:
        return self._rooms.values()

    def __len__(self) -> int:
        return len(self._rooms)

    @classmethod
    def load(cls, path: Path, *, default_stock: int = DEFAULT_TOTAL_STOCK) -> "RoomCatalog":
        if not path.exists():
            raise FileNotFoundError(f"Room catalog not found at {path}")
        data = json.loads(path.read_text())
        rooms: dict[str, RoomType] = {}
        for entry in data.get("rooms", []):
            room = RoomType.from_document(entry["id"], entry, default_stock=default_stock)
            rooms[room.id] = room
        return cls(rooms, source=path)
