"""Booking persistence and the booking status machine."""
from __future__ import annotations

from decimal import InvalidOperation

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .coupons import CouponError, check_redeemable, redeem_coupon
from .errors import InvalidTransition, NotFoundError, ValidationError
from .extensions import db
from .loyalty import award_for_booking
from .models import Booking, BookingStatus, Coupon, Notification, Salon, User
from .pricing import ZERO, to_money

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.UPCOMING: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def parse_status(value: object) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise ValidationError(f"status must be one of: {allowed}") from None


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _required_text(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required")
    return value.strip()


def _optional_int(payload: dict, key: str) -> int | None:
    value = payload.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer") from None


def parse_booking_payload(payload: dict) -> dict[str, object]:
    """Validate a create-booking body and return normalized fields."""
    salon_id = _optional_int(payload, "salonId")
    if salon_id is None:
        raise ValidationError("salonId is required")

    services = payload.get("services")
    if not isinstance(services, list) or not services:
        raise ValidationError("services must be a non-empty list")
    if not all(isinstance(s, str) and s.strip() for s in services):
        raise ValidationError("services must contain service names")

    try:
        total_price = to_money(payload.get("totalPrice"))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("totalPrice must be a number") from None
    if total_price < ZERO:
        raise ValidationError("totalPrice cannot be negative")

    payment_method = payload.get("paymentMethod") or ""
    if not isinstance(payment_method, str):
        raise ValidationError("paymentMethod must be a string")

    salon_name = payload.get("salonName") or ""
    if not isinstance(salon_name, str):
        raise ValidationError("salonName must be a string")

    payment_intent_id = payload.get("paymentIntentId") or None
    if payment_intent_id is not None and not isinstance(payment_intent_id, str):
        raise ValidationError("paymentIntentId must be a string")

    return {
        "salon_id": salon_id,
        "salon_name": salon_name.strip(),
        "salon_image": payload.get("salonImage") or "",
        "services": [s.strip() for s in services],
        "date": _required_text(payload, "date"),
        "time": _required_text(payload, "time"),
        "total_price": total_price,
        "payment_method": payment_method.strip(),
        "coupon_id": _optional_int(payload, "couponId"),
        "payment_intent_id": payment_intent_id,
    }


def create_booking(user: User, payload: dict) -> Booking:
    """Write one booking, consume its coupon and notify the user.

    The insert, the coupon increment and the notification commit together or
    not at all.
    """
    fields = parse_booking_payload(payload)

    salon = db.session.get(Salon, fields["salon_id"])
    if salon is None:
        raise NotFoundError("Salon not found")
    fields["salon_name"] = fields["salon_name"] or salon.name
    fields["salon_image"] = fields["salon_image"] or salon.image

    try:
        if fields["coupon_id"] is not None:
            check_redeemable(db.session.get(Coupon, fields["coupon_id"]))
            redeem_coupon(fields["coupon_id"])

        booking = Booking(user_id=user.user_id, status=BookingStatus.UPCOMING.value, **fields)
        db.session.add(booking)
        db.session.add(
            Notification(
                user_id=user.user_id,
                title="Booking Confirmed",
                message=(
                    f"Your appointment at {booking.salon_name} on {booking.date} "
                    f"at {booking.time} is confirmed."
                ),
                notification_type="booking",
            )
        )
        db.session.commit()
    except (CouponError, SQLAlchemyError):
        db.session.rollback()
        raise

    current_app.logger.info(
        "Booking %s created for user %s at salon %s", booking.booking_id, user.user_id, salon.salon_id
    )
    return booking


def list_bookings(user: User) -> list[Booking]:
    return (
        Booking.query.filter(Booking.user_id == user.user_id)
        .order_by(Booking.created_at.desc(), Booking.booking_id.desc())
        .all()
    )


def change_status(booking: Booking, target: object) -> Booking:
    """Move a booking along the transition table and commit.

    Setting the status it already has is a no-op.
    """
    new_status = parse_status(target)
    current = BookingStatus(booking.status)
    if new_status == current:
        return booking
    if not can_transition(current, new_status):
        raise InvalidTransition(
            f"Cannot change a booking from '{current.value}' to '{new_status.value}'"
        )

    booking.status = new_status.value
    try:
        if new_status is BookingStatus.COMPLETED:
            award_for_booking(booking)
        elif new_status is BookingStatus.CANCELLED:
            db.session.add(
                Notification(
                    user_id=booking.user_id,
                    title="Booking Cancelled",
                    message=f"Your appointment at {booking.salon_name} has been cancelled.",
                    notification_type="booking",
                )
            )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return booking


def cancel_booking(user: User, booking_id: int) -> Booking:
    booking = Booking.query.filter_by(booking_id=booking_id, user_id=user.user_id).first()
    if booking is None:
        raise NotFoundError("Booking not found")
    return change_status(booking, BookingStatus.CANCELLED)
