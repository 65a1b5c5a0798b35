"""Step-gated booking flow used by clients of the booking API.

A :class:`BookingWizard` walks one user through
``services -> datetime -> payment -> review -> processing -> success``.
It talks to the backend only through a :class:`BookingGateway`, so the
same flow runs against the HTTP API (:class:`salonbook.client.ApiClient`)
or an in-process fake in tests.

Network calls are strictly sequential: the catalog is loaded once,
coupons are checked on demand, and confirmation makes at most one
payment request followed by exactly one booking request.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Protocol

from .coupons import CouponSummary
from .errors import SalonBookError
from .payments import DEFAULT_PAYMENT_METHOD, PAYMENT_METHODS, PaymentHandle, PaymentMethod
from .pricing import PriceBreakdown, price_breakdown, to_money

logger = logging.getLogger(__name__)

BOOKING_WINDOW_DAYS = 14
# Half-hour slots; the salon closes for lunch between 12:00 and 12:30.
TIME_SLOTS = (
    "09:00", "09:30", "10:00", "10:30", "11:00", "11:30",
    "13:00", "13:30", "14:00", "14:30", "15:00", "15:30", "16:00",
)


class WizardStep(str, Enum):
    SERVICES = "services"
    DATETIME = "datetime"
    PAYMENT = "payment"
    REVIEW = "review"
    PROCESSING = "processing"
    SUCCESS = "success"


INTERACTIVE_STEPS = (
    WizardStep.SERVICES,
    WizardStep.DATETIME,
    WizardStep.PAYMENT,
    WizardStep.REVIEW,
)


class WizardError(Exception):
    """A user-facing failure reported through ``wizard.error``."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StepError(RuntimeError):
    """The caller asked for something the current step does not allow."""


def available_dates(today: date | None = None) -> list[date]:
    start = today or date.today()
    return [start + timedelta(days=offset) for offset in range(BOOKING_WINDOW_DAYS)]


@dataclass(frozen=True)
class ServiceOption:
    id: int
    name: str
    price: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceOption":
        return cls(id=int(data["id"]), name=str(data["name"]), price=to_money(data["price"]))


class BookingGateway(Protocol):
    def get_salon(self, salon_id: int) -> dict: ...

    def validate_coupon(self, code: str) -> CouponSummary: ...

    def create_payment_intent(self, amount: Decimal, booking_data: dict) -> PaymentHandle: ...

    def create_booking(self, fields: dict) -> dict: ...


def _message_for(exc: Exception) -> str:
    return getattr(exc, "message", None) or str(exc) or "Something went wrong"


class BookingWizard:
    """Collects one booking and submits it through ``gateway``."""

    def __init__(self, gateway: BookingGateway, salon_id: int, today: date | None = None) -> None:
        self.gateway = gateway
        self.salon_id = salon_id
        self.today = today or date.today()
        self.step = WizardStep.SERVICES
        self.salon: dict | None = None
        self.services: list[ServiceOption] = []
        self.selected: list[ServiceOption] = []
        self.date: date | None = None
        self.time: str | None = None
        self.payment_key = DEFAULT_PAYMENT_METHOD
        self.coupon: CouponSummary | None = None
        self.error: str | None = None
        self.booking: dict | None = None

    # --- catalog ---

    def load(self) -> dict | None:
        """Fetch the salon once; later calls reuse the first response.

        Returns ``None`` and sets ``error`` if the catalog could not be loaded.
        """
        if self.salon is None:
            try:
                salon = self.gateway.get_salon(self.salon_id)
            except (WizardError, SalonBookError) as exc:
                self.error = _message_for(exc)
                logger.warning("Could not load salon %s: %s", self.salon_id, self.error)
                return None
            self.salon = salon
            self.services = [ServiceOption.from_dict(s) for s in salon.get("services", [])]
            self.error = None
        return self.salon

    # --- step inputs ---

    def _require_step(self, *steps: WizardStep) -> None:
        if self.step not in steps:
            allowed = ", ".join(s.value for s in steps)
            raise StepError(f"not allowed in step '{self.step.value}' (expected {allowed})")

    def toggle_service(self, service_id: int) -> bool:
        """Select or deselect a service; returns whether it is now selected."""
        self._require_step(WizardStep.SERVICES)
        if self.load() is None:
            return False
        for chosen in self.selected:
            if chosen.id == service_id:
                self.selected.remove(chosen)
                return False
        for option in self.services:
            if option.id == service_id:
                self.selected.append(option)
                return True
        raise StepError(f"service {service_id} is not offered by this salon")

    def select_date(self, value: date) -> None:
        self._require_step(WizardStep.DATETIME)
        if value not in available_dates(self.today):
            raise StepError(f"{value.isoformat()} is outside the booking window")
        self.date = value

    def select_time(self, value: str) -> None:
        self._require_step(WizardStep.DATETIME)
        if value not in TIME_SLOTS:
            raise StepError(f"{value} is not an available time slot")
        self.time = value

    def select_payment(self, key: str) -> None:
        self._require_step(WizardStep.PAYMENT)
        if key not in PAYMENT_METHODS:
            raise StepError(f"unknown payment method '{key}'")
        self.payment_key = key

    @property
    def payment_method(self) -> PaymentMethod:
        return PAYMENT_METHODS[self.payment_key]

    # --- navigation ---

    def can_advance(self) -> bool:
        if self.step is WizardStep.SERVICES:
            return bool(self.selected)
        if self.step is WizardStep.DATETIME:
            return self.date is not None and self.time is not None
        return self.step is WizardStep.PAYMENT

    def advance(self) -> WizardStep:
        """Move to the next interactive step. ``review`` moves on via :meth:`confirm`."""
        if self.step not in INTERACTIVE_STEPS[:-1]:
            raise StepError(f"cannot advance from '{self.step.value}'")
        if not self.can_advance():
            raise StepError(f"step '{self.step.value}' is incomplete")
        self.step = INTERACTIVE_STEPS[INTERACTIVE_STEPS.index(self.step) + 1]
        self.error = None
        return self.step

    def back(self) -> WizardStep:
        if self.step not in INTERACTIVE_STEPS[1:]:
            raise StepError(f"cannot go back from '{self.step.value}'")
        self.step = INTERACTIVE_STEPS[INTERACTIVE_STEPS.index(self.step) - 1]
        self.error = None
        return self.step

    # --- pricing ---

    @property
    def pricing(self) -> PriceBreakdown:
        discount = self.coupon.as_discount if self.coupon else None
        return price_breakdown((s.price for s in self.selected), discount)

    @property
    def total(self) -> Decimal:
        return self.pricing.total

    def apply_coupon(self, code: str) -> bool:
        """Validate ``code`` and apply it. On failure ``error`` holds the reason."""
        self._require_step(WizardStep.REVIEW)
        try:
            coupon = self.gateway.validate_coupon(code)
        except (WizardError, SalonBookError) as exc:
            self.coupon = None
            self.error = _message_for(exc)
            logger.info("Coupon %r rejected: %s", code, self.error)
            return False
        self.coupon = coupon
        self.error = None
        return True

    def remove_coupon(self) -> None:
        self._require_step(WizardStep.REVIEW)
        self.coupon = None

    # --- confirmation ---

    def summary(self) -> dict[str, object]:
        return {
            "salonId": self.salon_id,
            "salonName": (self.salon or {}).get("name", ""),
            "services": [s.name for s in self.selected],
            "date": self.date.isoformat() if self.date else None,
            "time": self.time,
            "paymentMethod": self.payment_method.label,
            "coupon": self.coupon.code if self.coupon else None,
            **self.pricing.to_dict(),
        }

    def _booking_fields(self, payment_intent_id: str | None) -> dict[str, object]:
        salon = self.salon or {}
        return {
            "salonId": self.salon_id,
            "salonName": salon.get("name", ""),
            "salonImage": salon.get("image", ""),
            "services": [s.name for s in self.selected],
            "date": self.date.isoformat(),
            "time": self.time,
            "totalPrice": float(self.total),
            "paymentMethod": self.payment_method.label,
            "couponId": self.coupon.id if self.coupon else None,
            "paymentIntentId": payment_intent_id,
        }

    def confirm(self) -> bool:
        """Pay if needed, then persist the booking exactly once.

        Returns ``True`` on success. On failure the wizard is back on
        ``review`` with ``error`` set and nothing is retried.
        """
        self._require_step(WizardStep.REVIEW)
        if not self.selected or self.date is None or self.time is None:
            raise StepError("booking is incomplete")

        self.step = WizardStep.PROCESSING
        self.error = None
        try:
            payment_intent_id = None
            # Nothing to charge when a coupon covers the whole total.
            if self.payment_method.requires_intent and self.total > 0:
                snapshot = {
                    "salonId": self.salon_id,
                    "salonName": (self.salon or {}).get("name", ""),
                    "services": [s.name for s in self.selected],
                    "date": self.date.isoformat(),
                    "time": self.time,
                }
                handle = self.gateway.create_payment_intent(self.total, snapshot)
                payment_intent_id = handle.payment_intent_id
            self.booking = self.gateway.create_booking(self._booking_fields(payment_intent_id))
        except (WizardError, SalonBookError) as exc:
            self.error = _message_for(exc)
            self.step = WizardStep.REVIEW
            logger.warning("Booking for salon %s failed: %s", self.salon_id, self.error)
            return False

        self.step = WizardStep.SUCCESS
        logger.info("Booking %s confirmed for salon %s", self.booking.get("id"), self.salon_id)
        return True
