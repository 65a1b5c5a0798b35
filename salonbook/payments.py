"""Stripe hand-off for card-based payment methods."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import stripe
from flask import current_app

from .errors import PaymentError, PaymentsUnavailable, ValidationError
from .pricing import to_cents, to_money


@dataclass(frozen=True)
class PaymentMethod:
    key: str
    label: str
    requires_intent: bool


PAYMENT_METHODS: dict[str, PaymentMethod] = {
    "card": PaymentMethod("card", "Credit Card", True),
    "paypal": PaymentMethod("paypal", "PayPal", True),
    "cash": PaymentMethod("cash", "Pay at Salon", False),
}
DEFAULT_PAYMENT_METHOD = "card"


def payment_method(key: str) -> PaymentMethod:
    try:
        return PAYMENT_METHODS[key]
    except KeyError:
        raise ValidationError(f"Unknown payment method '{key}'") from None


def method_for_label(label: str) -> PaymentMethod | None:
    for method in PAYMENT_METHODS.values():
        if method.label == label:
            return method
    return None


@dataclass(frozen=True)
class PaymentHandle:
    client_secret: str
    payment_intent_id: str

    def to_dict(self) -> dict[str, str]:
        return {"clientSecret": self.client_secret, "paymentIntentId": self.payment_intent_id}


def _booking_metadata(booking_data: dict[str, object], user_id: int | None) -> dict[str, str]:
    # Stripe metadata values must be strings of at most 500 characters.
    services = booking_data.get("services") or []
    if isinstance(services, (list, tuple)):
        services = ", ".join(str(s) for s in services)
    metadata = {
        "salon_id": str(booking_data.get("salonId") or ""),
        "salon_name": str(booking_data.get("salonName") or ""),
        "services": str(services),
        "date": str(booking_data.get("date") or ""),
        "time": str(booking_data.get("time") or ""),
        "user_id": str(user_id or ""),
    }
    return {key: value[:500] for key, value in metadata.items()}


def create_payment_intent(
    amount: Decimal | float | str,
    currency: str | None = None,
    booking_data: dict[str, object] | None = None,
    user_id: int | None = None,
) -> PaymentHandle:
    """Ask Stripe for a PaymentIntent covering ``amount`` dollars."""
    total = to_money(amount)
    if total <= 0:
        raise ValidationError("amount must be greater than zero")

    stripe_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not stripe_key:
        current_app.logger.warning("Stripe secret key not configured")
        raise PaymentsUnavailable()

    stripe.api_key = stripe_key
    try:
        intent = stripe.PaymentIntent.create(
            amount=to_cents(total),
            currency=(currency or current_app.config.get("STRIPE_CURRENCY", "usd")).lower(),
            metadata=_booking_metadata(booking_data or {}, user_id),
            automatic_payment_methods={"enabled": True},
        )
    except stripe.error.StripeError as exc:
        current_app.logger.exception("Stripe API error while creating payment intent", exc_info=exc)
        raise PaymentError() from exc

    return PaymentHandle(client_secret=intent.client_secret, payment_intent_id=intent.id)


def construct_webhook_event(payload: bytes, signature: str | None):
    """Verify a webhook delivery and return the Stripe event."""
    webhook_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not webhook_secret:
        current_app.logger.error("Stripe webhook secret not configured - webhooks will not be processed")
        raise PaymentsUnavailable("Webhook processing is not configured.")
    if not signature:
        raise ValidationError("Missing stripe-signature")

    try:
        return stripe.Webhook.construct_event(payload, signature, webhook_secret)
    except ValueError as exc:
        current_app.logger.warning("Invalid webhook payload")
        raise ValidationError("Invalid payload") from exc
    except stripe.error.SignatureVerificationError as exc:
        current_app.logger.warning("Invalid signature for webhook")
        raise ValidationError("Invalid signature") from exc
