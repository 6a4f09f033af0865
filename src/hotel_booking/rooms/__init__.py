"""Room type reference data."""

from .catalog import RoomCatalog
from .models import DEFAULT_TOTAL_STOCK, RoomType, parse_price

__all__ = [
    "DEFAULT_TOTAL_STOCK",
    "RoomCatalog",
    "RoomType",
    "parse_price",
]
