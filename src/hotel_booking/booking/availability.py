"""Per-night stock checks for a requested stay."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, List, Mapping, Optional


def stay_dates(check_in: date, check_out: date) -> List[date]:
    """Return every night of the half-open stay ``[check_in, check_out)``."""
    return list(_iter_nights(check_in, check_out))


def _iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


def date_key(day: date) -> str:
    return day.isoformat()


def available_rooms(total_stock: int, booked_count: int) -> int:
    return max(0, total_stock - booked_count)


@dataclass(frozen=True)
class AvailabilityCheck:
    """Outcome of checking a stay against per-night booked counts."""

    rooms_requested: int
    failing_date: Optional[date] = None
    available: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.failing_date is None

    def message(self) -> str:
        if self.ok:
            return "Rooms available for the selected dates."
        plural = "" if self.available == 1 else "s"
        return (
            f"Only {self.available} room{plural} available on {self.failing_date:%d %b %Y}. "
            f"You requested {self.rooms_requested}."
        )


def check_availability(
    total_stock: int,
    booked_counts: Mapping[str, int],
    check_in: date,
    check_out: date,
    rooms_count: int,
) -> AvailabilityCheck:
    """Check that every night of the stay has ``rooms_count`` free rooms.

    ``booked_counts`` is keyed by ISO date; missing nights count as unbooked.
    Stops at the first night that falls short and reports it, even when a later
    night is tighter. A stay with no nights passes; callers reject those.
    """
    for night in _iter_nights(check_in, check_out):
        free = available_rooms(total_stock, int(booked_counts.get(date_key(night), 0) or 0))
        if free < rooms_count:
            return AvailabilityCheck(rooms_requested=rooms_count, failing_date=night, available=free)
    return AvailabilityCheck(rooms_requested=rooms_count)
