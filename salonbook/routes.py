"""HTTP routes for health, auth, catalog, coupons, payments and bookings."""
from __future__ import annotations

import secrets
from datetime import datetime, timezone

from flask import Blueprint, Flask, current_app, g, jsonify, request
from sqlalchemy import or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import bookings as booking_service
from .auth import build_token, login_required, set_password, verify_password
from .coupons import validate_coupon
from .errors import SalonBookError
from .extensions import db
from .models import Notification, Salon, User
from .payments import construct_webhook_event, create_payment_intent

bp = Blueprint("api", __name__)

OAUTH_PROVIDERS = {"google": "Google", "facebook": "Facebook", "apple": "Apple"}
PROFILE_FIELDS = {
    "fullName": "full_name",
    "phone": "phone",
    "nickname": "nickname",
    "gender": "gender",
    "dob": "dob",
    "avatar": "avatar",
}


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# --- Authentication ---


def _first_non_string(payload: dict, *keys: str) -> str | None:
    for key in keys:
        if payload.get(key) is not None and not isinstance(payload[key], str):
            return key
    return None


def _welcome(user: User, how: str) -> None:
    db.session.add(
        Notification(
            user_id=user.user_id,
            title="Welcome to Casca!",
            message=f"Your account has been created{how}. Start exploring salons near you!",
            notification_type="system",
        )
    )


@bp.post("/api/auth/signup")
def signup() -> tuple[dict[str, object], int]:
    """Register a new user and return an access token.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            fullName:
              type: string
            email:
              type: string
            password:
              type: string
          required:
            - fullName
            - email
            - password
    responses:
      201:
        description: User registered
      400:
        description: Missing fields
      409:
        description: Email already registered
    """
    payload = request.get_json(silent=True) or {}
    bad_key = _first_non_string(payload, "fullName", "email", "password")
    if bad_key:
        return jsonify({"error": "invalid_payload", "message": f"{bad_key} must be a string"}), 400

    full_name = (payload.get("fullName") or "").strip()
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not full_name or not email or not password:
        return jsonify({"error": "invalid_payload", "message": "All fields are required"}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({"error": "conflict", "message": "Email already registered"}), 409

    try:
        user = User(full_name=full_name, email=email)
        db.session.add(user)
        set_password(user, password)
        db.session.flush()
        _welcome(user, " successfully")
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "conflict", "message": "Email already registered"}), 409
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to register new user", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not create account"}), 500

    return jsonify({"token": build_token(user), "user": user.to_dict()}), 201


@bp.post("/api/auth/signin")
def signin() -> tuple[dict[str, object], int]:
    """Authenticate by email/password.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Login successful, returns access token
      400:
        description: Missing email or password
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    bad_key = _first_non_string(payload, "email", "password")
    if bad_key:
        return jsonify({"error": "invalid_payload", "message": f"{bad_key} must be a string"}), 400

    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""
    if not email or not password:
        return jsonify({"error": "invalid_payload", "message": "Email and password required"}), 400

    user = User.query.filter_by(email=email).first()
    if user is None or not verify_password(user, password):
        return jsonify({"error": "unauthorized", "message": "Invalid credentials"}), 401

    user.auth_account.last_login_at = datetime.now(timezone.utc)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update last login timestamp", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not sign in"}), 500

    return jsonify({"token": build_token(user), "user": user.to_dict()}), 200


@bp.post("/api/auth/oauth/<provider>")
def oauth_signin(provider: str) -> tuple[dict[str, object], int]:
    """Find or create a user from a social provider's verified profile.

    The provider handshake happens on the client; this endpoint only trusts
    the email it is handed.
    """
    provider_name = OAUTH_PROVIDERS.get(provider)
    if provider_name is None:
        return jsonify({"error": "not_found", "message": f"Unknown provider '{provider}'"}), 404

    payload = request.get_json(silent=True) or {}
    bad_key = _first_non_string(payload, "email", "fullName", "avatar")
    if bad_key:
        return jsonify({"error": "invalid_payload", "message": f"{bad_key} must be a string"}), 400
    email = (payload.get("email") or "").strip().lower()
    if not email:
        return jsonify({"error": "invalid_payload", "message": "Email is required"}), 400
    avatar = (payload.get("avatar") or "").strip()

    try:
        user = User.query.filter_by(email=email).first()
        created = user is None
        if created:
            default_name = "Apple User" if provider == "apple" else email.split("@")[0]
            user = User(full_name=(payload.get("fullName") or "").strip() or default_name, email=email)
            db.session.add(user)
            # Social accounts get an unusable random password.
            set_password(user, secrets.token_urlsafe(32))
            db.session.flush()
            _welcome(user, f" with {provider_name}")
        if avatar and not user.avatar:
            user.avatar = avatar
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed %s sign-in", provider_name, exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not sign in"}), 500

    status = 201 if created else 200
    return jsonify({"token": build_token(user), "user": user.to_dict()}), status


@bp.post("/api/auth/logout")
def logout() -> tuple[dict[str, str], int]:
    # Tokens are stateless; the client drops its copy.
    return jsonify({"message": "Logged out"}), 200


@bp.get("/api/auth/me")
@login_required
def current_user() -> tuple[dict[str, object], int]:
    return jsonify({"user": g.current_user.to_dict()}), 200


@bp.put("/api/auth/profile")
@login_required
def update_profile() -> tuple[dict[str, object], int]:
    """Update editable profile fields of the signed-in user."""
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    for key, attr in PROFILE_FIELDS.items():
        if key not in payload or payload[key] is None:
            continue
        value = payload[key]
        if not isinstance(value, str):
            return jsonify({"error": "invalid_payload", "message": f"{key} must be a string"}), 400
        if key == "fullName" and not value.strip():
            return jsonify({"error": "invalid_payload", "message": "fullName cannot be empty"}), 400
        setattr(user, attr, value.strip())

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update user profile", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not update profile"}), 500

    return jsonify({"user": user.to_dict()}), 200


# --- Salons ---


@bp.get("/api/salons")
def list_salons() -> tuple[list[dict[str, object]], int]:
    """Return every salon.
    ---
    tags:
      - Salons
    responses:
      200:
        description: List of salons
      500:
        description: Database error
    """
    try:
        salons = Salon.query.order_by(Salon.salon_id).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch salons", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load salons"}), 500
    return jsonify([s.to_dict() for s in salons]), 200


@bp.get("/api/salons/search")
def search_salons() -> tuple[list[dict[str, object]], int]:
    """Case-insensitive substring search over salon name and address."""
    query = (request.args.get("q") or "").strip()
    try:
        salon_query = Salon.query
        if query:
            pattern = f"%{query}%"
            salon_query = salon_query.filter(
                or_(Salon.name.ilike(pattern), Salon.address.ilike(pattern))
            )
        salons = salon_query.order_by(Salon.name).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to search salons", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not search salons"}), 500
    return jsonify([s.to_dict() for s in salons]), 200


@bp.get("/api/salons/<int:salon_id>")
def get_salon_details(salon_id: int) -> tuple[dict[str, object], int]:
    """Salon with its services, packages, specialists and reviews.
    ---
    tags:
      - Salons
    parameters:
      - name: salon_id
        in: path
        type: integer
        required: true
    responses:
      200:
        description: Salon details
      404:
        description: Salon not found
    """
    try:
        salon = db.session.get(Salon, salon_id)
        if salon is None:
            return jsonify({"error": "not_found", "message": "Salon not found"}), 404
        return jsonify(salon.to_dict(detail=True)), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch salon details", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load salon"}), 500


# --- Coupons ---


@bp.post("/api/coupons/validate")
@login_required
def validate_coupon_code() -> tuple[dict[str, object], int]:
    """Check a coupon code without consuming it.
    ---
    tags:
      - Coupons
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            code:
              type: string
    responses:
      200:
        description: Coupon summary (id, code, discount, type)
      400:
        description: Inactive, expired or exhausted coupon
      404:
        description: Unknown code
    """
    payload = request.get_json(silent=True) or {}
    summary = validate_coupon(payload.get("code"))
    return jsonify(summary.to_dict()), 200


# --- Payments ---


@bp.post("/api/stripe/create-payment-intent")
@login_required
def stripe_payment_intent() -> tuple[dict[str, object], int]:
    """Create a Stripe PaymentIntent for a booking total.
    ---
    tags:
      - Payments
    security:
      - Bearer: []
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            amount:
              type: number
              description: Total in dollars
            currency:
              type: string
              example: usd
            bookingData:
              type: object
    responses:
      200:
        description: clientSecret and paymentIntentId
      400:
        description: Invalid amount
      401:
        description: Authentication required
      502:
        description: Stripe rejected the request
    """
    payload = request.get_json(silent=True) or {}
    amount = payload.get("amount")
    if amount is None or isinstance(amount, bool):
        return jsonify({"error": "invalid_payload", "message": "amount is required"}), 400
    booking_data = payload.get("bookingData") or {}
    if not isinstance(booking_data, dict):
        return jsonify({"error": "invalid_payload", "message": "bookingData must be an object"}), 400

    try:
        handle = create_payment_intent(
            amount, payload.get("currency"), booking_data, user_id=g.current_user.user_id
        )
    except (ArithmeticError, TypeError, ValueError):
        return jsonify({"error": "invalid_payload", "message": "amount must be a number"}), 400
    return jsonify(handle.to_dict()), 200


@bp.post("/api/stripe/webhook")
def stripe_webhook() -> tuple[dict[str, object], int]:
    """Receive signed Stripe events; payment outcomes are logged."""
    event = construct_webhook_event(request.get_data(), request.headers.get("Stripe-Signature"))
    event_type = event["type"]
    if event_type.startswith("payment_intent."):
        intent = event["data"]["object"]
        current_app.logger.info("Stripe event %s for payment_intent %s", event_type, intent.get("id"))
    return jsonify({"received": True}), 200


# --- Bookings ---


@bp.get("/api/bookings")
@login_required
def list_bookings() -> tuple[list[dict[str, object]], int]:
    try:
        rows = booking_service.list_bookings(g.current_user)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch bookings", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load bookings"}), 500
    return jsonify([b.to_dict() for b in rows]), 200


@bp.post("/api/bookings")
@login_required
def create_booking() -> tuple[dict[str, object], int]:
    """Persist a confirmed booking.
    ---
    tags:
      - Bookings
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            salonId:
              type: integer
            salonName:
              type: string
            salonImage:
              type: string
            services:
              type: array
              items:
                type: string
            date:
              type: string
            time:
              type: string
            totalPrice:
              type: number
            paymentMethod:
              type: string
            couponId:
              type: integer
            paymentIntentId:
              type: string
          required:
            - salonId
            - services
            - date
            - time
            - totalPrice
    responses:
      201:
        description: Booking created with status upcoming
      400:
        description: Invalid payload or coupon no longer usable
      404:
        description: Salon not found
    """
    payload = request.get_json(silent=True) or {}
    try:
        booking = booking_service.create_booking(g.current_user, payload)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to create booking", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Booking failed"}), 500
    return jsonify(booking.to_dict()), 201


@bp.put("/api/bookings/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int) -> tuple[dict[str, object], int]:
    """Cancel one of the caller's bookings; repeating the call is harmless."""
    try:
        booking = booking_service.cancel_booking(g.current_user, booking_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to cancel booking", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not cancel booking"}), 500
    return jsonify(booking.to_dict()), 200


def handle_domain_error(exc: SalonBookError):
    return jsonify(exc.to_dict()), exc.status_code


def register_routes(app: Flask) -> None:
    from .routes_admin import bp_admin
    from .routes_extended import bp_ext

    app.register_blueprint(bp)
    app.register_blueprint(bp_ext)
    app.register_blueprint(bp_admin)
    app.register_error_handler(SalonBookError, handle_domain_error)
