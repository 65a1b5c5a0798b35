"""Price arithmetic for bookings.

All amounts are :class:`~decimal.Decimal` dollars rounded half-up to cents.
Discounts are always computed from the subtotal, so applying the same coupon
twice yields the same total as applying it once.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_money(value: object) -> Decimal:
    """Coerce ``value`` (int, float, str or Decimal) to a cent-rounded Decimal.

    NaN and infinities raise :class:`~decimal.InvalidOperation`.
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        # str() avoids binary float artefacts such as 0.1 + 0.2.
        amount = Decimal(str(value))
    else:
        amount = Decimal(value)
    if not amount.is_finite():
        raise InvalidOperation(f"{value!r} is not a finite amount")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: object) -> int:
    return int(to_money(value) * 100)


@dataclass(frozen=True)
class Discount:
    amount: Decimal
    discount_type: str  # "percentage" or "fixed"

    def value_for(self, subtotal: Decimal) -> Decimal:
        if self.discount_type == "percentage":
            return to_money(subtotal * self.amount / HUNDRED)
        return to_money(self.amount)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    discount: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, float]:
        return {
            "subtotal": float(self.subtotal),
            "discount": float(self.discount),
            "total": float(self.total),
        }


def subtotal(prices: Iterable[object]) -> Decimal:
    return to_money(sum((to_money(p) for p in prices), ZERO))


def apply_discount(amount: Decimal, discount: Discount | None) -> PriceBreakdown:
    amount = to_money(amount)
    if discount is None:
        return PriceBreakdown(subtotal=amount, discount=ZERO, total=amount)
    value = discount.value_for(amount)
    total = max(ZERO, amount - value)
    # Report what was actually taken off, never more than the subtotal.
    return PriceBreakdown(subtotal=amount, discount=amount - total, total=total)


def price_breakdown(prices: Iterable[object], discount: Discount | None = None) -> PriceBreakdown:
    return apply_discount(subtotal(prices), discount)
