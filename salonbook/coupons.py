"""Coupon validation and redemption."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, or_, update

from .errors import SalonBookError, ValidationError
from .extensions import db
from .models import Coupon
from .pricing import Discount, to_money


class CouponError(SalonBookError):
    error = "invalid_coupon"
    message = "This coupon cannot be used."


class CouponNotFound(CouponError):
    status_code = 404
    error = "coupon_not_found"
    message = "Invalid coupon code"


class CouponInactive(CouponError):
    error = "coupon_inactive"
    message = "This coupon is no longer active"


class CouponExpired(CouponError):
    error = "coupon_expired"
    message = "This coupon has expired"


class CouponLimitReached(CouponError):
    error = "coupon_limit_reached"
    message = "This coupon has reached its usage limit"


@dataclass(frozen=True)
class CouponSummary:
    id: int
    code: str
    discount: Decimal
    type: str

    @property
    def as_discount(self) -> Discount:
        return Discount(amount=self.discount, discount_type=self.type)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "code": self.code,
            "discount": float(self.discount),
            "type": self.type,
        }


def normalize_code(code: object) -> str:
    return str(code or "").strip().upper()


def find_coupon(code: str) -> Coupon | None:
    return Coupon.query.filter(func.upper(Coupon.code) == normalize_code(code)).first()


def check_redeemable(coupon: Coupon | None, today: date | None = None) -> Coupon:
    """Apply the checks in order: not found, inactive, expired, limit reached."""
    if coupon is None:
        raise CouponNotFound()
    if not coupon.active:
        raise CouponInactive()
    today_str = (today or date.today()).isoformat()
    if coupon.expiry_date and coupon.expiry_date < today_str:
        raise CouponExpired()
    if coupon.usage_limit > 0 and coupon.used_count >= coupon.usage_limit:
        raise CouponLimitReached()
    return coupon


def validate_coupon(code: object, today: date | None = None) -> CouponSummary:
    """Look a code up and decide whether it can be used. Never writes."""
    normalized = normalize_code(code)
    if not normalized:
        raise ValidationError("Coupon code is required")

    coupon = check_redeemable(find_coupon(normalized), today)
    return CouponSummary(
        id=coupon.coupon_id,
        code=coupon.code,
        discount=to_money(coupon.discount),
        type=coupon.discount_type,
    )


def redeem_coupon(coupon_id: int) -> None:
    """Consume one use of a coupon inside the caller's transaction.

    The increment is conditional so concurrent redemptions cannot push
    ``used_count`` past a non-zero ``usage_limit``.
    """
    result = db.session.execute(
        update(Coupon)
        .where(
            Coupon.coupon_id == coupon_id,
            Coupon.active.is_(True),
            or_(Coupon.usage_limit == 0, Coupon.used_count < Coupon.usage_limit),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        # Surface why the row was skipped; otherwise the last use went elsewhere.
        check_redeemable(db.session.get(Coupon, coupon_id, populate_existing=True))
        raise CouponLimitReached()
