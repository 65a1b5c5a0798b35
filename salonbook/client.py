"""HTTP client for the booking API.

:class:`ApiClient` implements :class:`salonbook.wizard.BookingGateway`
so a :class:`~salonbook.wizard.BookingWizard` can drive a running server.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

import httpx

from .coupons import CouponSummary
from .payments import PaymentHandle
from .pricing import to_money
from .wizard import WizardError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ApiError(WizardError):
    """Non-2xx response, or the server could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, error: str | None = None) -> None:
        super().__init__(message, status_code)
        self.error = error


class ApiClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.token = token
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, json: dict | None = None, params: dict | None = None) -> Any:
        try:
            response = self._http.request(method, path, json=json, params=params, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = _json_or_empty(exc.response)
            message = body.get("message") or f"HTTP error {exc.response.status_code}"
            logger.warning("%s %s failed with %s: %s", method, path, exc.response.status_code, message)
            raise ApiError(message, exc.response.status_code, body.get("error")) from exc
        except httpx.RequestError as exc:
            logger.warning("%s %s could not reach the server: %s", method, path, exc)
            raise ApiError("Could not reach the booking service") from exc
        return response.json()

    # --- auth ---

    def sign_in(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/signin", json={"email": email, "password": password})
        self.token = data["token"]
        return data["user"]

    # --- BookingGateway ---

    def get_salon(self, salon_id: int) -> dict:
        return self._request("GET", f"/api/salons/{salon_id}")

    def validate_coupon(self, code: str) -> CouponSummary:
        data = self._request("POST", "/api/coupons/validate", json={"code": code})
        return CouponSummary(
            id=int(data["id"]),
            code=data["code"],
            discount=to_money(data["discount"]),
            type=data["type"],
        )

    def create_payment_intent(self, amount: Decimal, booking_data: dict) -> PaymentHandle:
        data = self._request(
            "POST",
            "/api/stripe/create-payment-intent",
            json={"amount": float(amount), "currency": "usd", "bookingData": booking_data},
        )
        return PaymentHandle(client_secret=data["clientSecret"], payment_intent_id=data["paymentIntentId"])

    def create_booking(self, fields: dict) -> dict:
        return self._request("POST", "/api/bookings", json=fields)

    # --- bookings ---

    def list_bookings(self) -> list[dict]:
        return self._request("GET", "/api/bookings")

    def cancel_booking(self, booking_id: int) -> dict:
        return self._request("PUT", f"/api/bookings/{booking_id}/cancel")


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
