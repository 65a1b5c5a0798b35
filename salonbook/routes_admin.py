"""Admin routes: coupons, booking status and broadcast messages."""
from __future__ import annotations

from datetime import date
from decimal import InvalidOperation

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import bookings as booking_service
from . import messaging
from .auth import admin_required
from .coupons import normalize_code
from .errors import ValidationError
from .extensions import db
from .models import Booking, Coupon, DiscountType
from .pricing import ZERO, to_money

bp_admin = Blueprint("api_admin", __name__, url_prefix="/api/admin")


def _coupon_fields(payload: dict, partial: bool = False) -> dict[str, object]:
    """Validate an admin coupon body into column values."""
    fields: dict[str, object] = {}

    if "code" in payload or not partial:
        code = normalize_code(payload.get("code"))
        if not code:
            raise ValidationError("code is required")
        fields["code"] = code

    if "discount" in payload or not partial:
        try:
            discount = to_money(payload.get("discount"))
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("discount must be a number") from None
        if discount < ZERO:
            raise ValidationError("discount cannot be negative")
        fields["discount"] = discount

    if "type" in payload or not partial:
        try:
            fields["discount_type"] = DiscountType(payload.get("type") or "percentage").value
        except ValueError:
            raise ValidationError("type must be 'percentage' or 'fixed'") from None

    if "expiryDate" in payload or not partial:
        expiry = str(payload.get("expiryDate") or "").strip()
        try:
            date.fromisoformat(expiry)
        except ValueError:
            raise ValidationError("expiryDate must be YYYY-MM-DD") from None
        fields["expiry_date"] = expiry

    if "usageLimit" in payload:
        try:
            limit = int(payload.get("usageLimit") or 0)
        except (TypeError, ValueError):
            raise ValidationError("usageLimit must be an integer") from None
        if limit < 0:
            raise ValidationError("usageLimit cannot be negative")
        fields["usage_limit"] = limit

    if "active" in payload:
        fields["active"] = bool(payload.get("active"))

    discount_type = fields.get("discount_type")
    if discount_type == DiscountType.PERCENTAGE.value and fields.get("discount", ZERO) > 100:
        raise ValidationError("percentage discount cannot exceed 100")
    return fields


@bp_admin.get("/coupons")
@admin_required
def list_coupons() -> tuple[list[dict[str, object]], int]:
    try:
        coupons = Coupon.query.order_by(Coupon.coupon_id).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch coupons", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load coupons"}), 500
    return jsonify([c.to_dict() for c in coupons]), 200


@bp_admin.post("/coupons")
@admin_required
def create_coupon() -> tuple[dict[str, object], int]:
    """Create a coupon.
    ---
    tags:
      - Admin
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            code:
              type: string
            discount:
              type: number
            type:
              type: string
              enum: [percentage, fixed]
            expiryDate:
              type: string
              example: "2026-12-31"
            usageLimit:
              type: integer
              description: 0 means unlimited
            active:
              type: boolean
    responses:
      201:
        description: Coupon created
      400:
        description: Invalid payload
      409:
        description: Code already exists
    """
    payload = request.get_json(silent=True) or {}
    coupon = Coupon(**_coupon_fields(payload))
    try:
        db.session.add(coupon)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "conflict", "message": "Coupon code already exists"}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create coupon", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not create coupon"}), 500
    return jsonify(coupon.to_dict()), 201


@bp_admin.put("/coupons/<int:coupon_id>")
@admin_required
def update_coupon(coupon_id: int) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    coupon = db.session.get(Coupon, coupon_id)
    if coupon is None:
        return jsonify({"error": "not_found", "message": "Coupon not found"}), 404

    fields = _coupon_fields(payload, partial=True)
    if (
        fields.get("discount_type", coupon.discount_type) == DiscountType.PERCENTAGE.value
        and to_money(fields.get("discount", coupon.discount)) > 100
    ):
        raise ValidationError("percentage discount cannot exceed 100")

    for attr, value in fields.items():
        setattr(coupon, attr, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "conflict", "message": "Coupon code already exists"}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update coupon", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not update coupon"}), 500
    return jsonify(coupon.to_dict()), 200


@bp_admin.delete("/coupons/<int:coupon_id>")
@admin_required
def delete_coupon(coupon_id: int) -> tuple[dict[str, object], int]:
    coupon = db.session.get(Coupon, coupon_id)
    if coupon is None:
        return jsonify({"error": "not_found", "message": "Coupon not found"}), 404

    # Bookings keep their history; they just lose the link.
    try:
        Booking.query.filter_by(coupon_id=coupon_id).update({"coupon_id": None})
        db.session.delete(coupon)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete coupon", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not delete coupon"}), 500
    return jsonify({"success": True}), 200


@bp_admin.get("/bookings")
@admin_required
def list_all_bookings() -> tuple[list[dict[str, object]], int]:
    status = request.args.get("status")
    try:
        query = Booking.query
        if status:
            query = query.filter(Booking.status == booking_service.parse_status(status).value)
        rows = query.order_by(Booking.created_at.desc(), Booking.booking_id.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch bookings", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load bookings"}), 500
    return jsonify([b.to_dict() for b in rows]), 200


@bp_admin.put("/bookings/<int:booking_id>/status")
@admin_required
def update_booking_status(booking_id: int) -> tuple[dict[str, object], int]:
    """Move a booking to a new status.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Updated booking
      400:
        description: Unknown status
      404:
        description: Booking not found
      409:
        description: Transition not allowed from the current status
    """
    payload = request.get_json(silent=True) or {}
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        return jsonify({"error": "not_found", "message": "Booking not found"}), 404

    try:
        booking = booking_service.change_status(booking, payload.get("status"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to update booking status", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not update booking"}), 500
    return jsonify(booking.to_dict()), 200


@bp_admin.post("/messages/broadcast")
@admin_required
def broadcast_message() -> tuple[dict[str, object], int]:
    """Message one user (``targetUserId``) or everyone (``"all"``)."""
    payload = request.get_json(silent=True) or {}
    try:
        sent = messaging.broadcast(payload.get("targetUserId"), payload.get("content") or "")
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to broadcast message", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not send message"}), 500

    if payload.get("targetUserId") == "all":
        return jsonify({"success": True, "count": len(sent)}), 200
    return jsonify(sent[0].to_dict()), 200
