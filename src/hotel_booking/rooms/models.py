"""Room type reference data."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

DEFAULT_TOTAL_STOCK = 10

_NON_DIGITS = re.compile(r"[^0-9]")


def parse_price(value: Any) -> int:
    """Return the whole-unit price in ``value``.

    Display strings such as ``"₹2,500 / night"`` keep their digits only; anything
    without digits is treated as 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    digits = _NON_DIGITS.sub("", str(value))
    return int(digits) if digits else 0


@dataclass(frozen=True)
class RoomType:
    """A bookable class of physical rooms sharing a nightly price."""

    id: str
    name: str
    nightly_price: int
    total_stock: int = DEFAULT_TOTAL_STOCK
    image: Optional[str] = None
    images: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.nightly_price < 0:
            raise ValueError("nightly_price must not be negative")
        if self.total_stock < 0:
            raise ValueError("total_stock must not be negative")

    @classmethod
    def from_document(
        cls,
        room_id: str,
        data: Mapping[str, Any],
        *,
        default_stock: int = DEFAULT_TOTAL_STOCK,
    ) -> "RoomType":
        price = data.get("nightly_price")
        if price is None:
            price = data.get("price")
        stock = data.get("total_stock")
        return cls(
            id=str(room_id),
            name=str(data.get("name") or room_id),
            nightly_price=parse_price(price),
            total_stock=int(stock) if stock else default_stock,
            image=data.get("image"),
            images=[str(item) for item in data.get("images") or []],
        )

    def to_document(self) -> dict[str, object]:
        return {
            "name": self.name,
            "nightly_price": self.nightly_price,
            "total_stock": self.total_stock,
            "image": self.image,
            "images": list(self.images),
        }
