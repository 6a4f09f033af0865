"""Room charge, GST and advance payment arithmetic.

All amounts are whole currency units held as ``int``; percentages are applied with
integer round-half-up so the results never drift the way float maths can.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

# (inclusive nightly ceiling, percent); the last slab has no ceiling.
GST_SLABS: tuple[tuple[Optional[int], int], ...] = (
    (1000, 0),
    (7500, 12),
    (None, 18),
)
ADVANCE_PERCENT = 20


class PaymentType(str, enum.Enum):
    FULL = "full"
    ADVANCE = "advance"


def round_percent(amount: int, percent: int) -> int:
    """Return ``amount * percent / 100`` rounded half-up to a whole unit."""
    if amount < 0 or percent < 0:
        raise ValueError("amount and percent must not be negative")
    return (amount * percent + 50) // 100


def gst_percent(nightly_price: int) -> int:
    """GST slab for a room, chosen by its nightly rate rather than the stay total."""
    for ceiling, percent in GST_SLABS:
        if ceiling is None or nightly_price <= ceiling:
            return percent
    raise AssertionError("GST slabs must end with an open ceiling")


@dataclass(frozen=True)
class PricingBreakdown:
    nightly_price: int
    rooms_count: int
    nights: int
    base_price: int
    gst_percent: int
    tax_amount: int
    total_price: int
    advance_amount: int
    payment_type: PaymentType
    payable_amount: int
    pending_amount: int

    @property
    def gst_rate(self) -> Decimal:
        return Decimal(self.gst_percent) / 100

    def to_dict(self) -> dict[str, object]:
        return {
            "base_amount": self.base_price,
            "gst_percent": self.gst_percent,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_price,
            "advance_amount": self.advance_amount,
            "paid_amount": self.payable_amount,
            "pending_amount": self.pending_amount,
            "payment_type": self.payment_type.value,
        }


def calculate_pricing(
    nightly_price: int,
    rooms_count: int,
    nights: Optional[int],
    payment_type: PaymentType | str = PaymentType.ADVANCE,
) -> PricingBreakdown:
    """Price a stay. ``nights`` of ``None`` or 0 (dates not picked yet) bills one night."""
    if nightly_price < 0:
        raise ValueError("nightly_price must not be negative")
    if rooms_count < 0:
        raise ValueError("rooms_count must not be negative")
    if nights is not None and nights < 0:
        raise ValueError("nights must not be negative")
    payment_type = PaymentType(payment_type)
    billed_nights = nights or 1

    base_price = nightly_price * rooms_count * billed_nights
    percent = gst_percent(nightly_price)
    tax_amount = round_percent(base_price, percent)
    total_price = base_price + tax_amount
    advance_amount = round_percent(total_price, ADVANCE_PERCENT)
    payable_amount = total_price if payment_type is PaymentType.FULL else advance_amount

    return PricingBreakdown(
        nightly_price=nightly_price,
        rooms_count=rooms_count,
        nights=billed_nights,
        base_price=base_price,
        gst_percent=percent,
        tax_amount=tax_amount,
        total_price=total_price,
        advance_amount=advance_amount,
        payment_type=payment_type,
        payable_amount=payable_amount,
        pending_amount=total_price - payable_amount,
    )
