"""Tests for the HTTP API client."""
from __future__ import annotations

import json
from datetime import date, timedelta
from decimal import Decimal

import httpx
import pytest

from salonbook.client import ApiClient, ApiError
from salonbook.extensions import db
from salonbook.models import Booking, Coupon
from salonbook.wizard import BookingWizard, WizardStep


def make_client(handler, token="tok") -> ApiClient:
    return ApiClient("http://api.test", token=token, transport=httpx.MockTransport(handler))


def test_requests_carry_bearer_token() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["path"] = request.url.path
        return httpx.Response(200, json={"id": 3, "name": "Belle Curls", "services": []})

    with make_client(handler) as api:
        salon = api.get_salon(3)

    assert salon["name"] == "Belle Curls"
    assert seen == {"auth": "Bearer tok", "path": "/api/salons/3"}


def test_validate_coupon_parses_summary() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"code": "SAVE10"}
        return httpx.Response(200, json={"id": 1, "code": "SAVE10", "discount": 10, "type": "percentage"})

    summary = make_client(handler).validate_coupon("SAVE10")

    assert summary.discount == Decimal("10.00")
    assert summary.as_discount.discount_type == "percentage"


def test_error_body_becomes_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "coupon_expired", "message": "This coupon has expired"})

    with pytest.raises(ApiError) as excinfo:
        make_client(handler).validate_coupon("OLD20")

    assert excinfo.value.status_code == 400
    assert excinfo.value.error == "coupon_expired"
    assert excinfo.value.message == "This coupon has expired"


def test_non_json_error_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(ApiError) as excinfo:
        make_client(handler).list_bookings()

    assert excinfo.value.message == "HTTP error 502"


def test_connection_failure_becomes_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError) as excinfo:
        make_client(handler).create_booking({"salonId": 1})

    assert excinfo.value.status_code is None


def test_payment_intent_request_shape() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["amount"] == 60.0
        assert body["bookingData"]["salonId"] == 1
        return httpx.Response(200, json={"clientSecret": "cs", "paymentIntentId": "pi_9"})

    handle = make_client(handler).create_payment_intent(Decimal("60.00"), {"salonId": 1})

    assert handle.payment_intent_id == "pi_9"


def test_sign_in_stores_token() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"token": "fresh", "user": {"id": 1}})

    api = make_client(handler, token=None)
    api.sign_in("ana@example.com", "secret123")

    assert api.token == "fresh"


def test_wizard_books_through_the_real_api(app, create_user, salon, make_coupon) -> None:
    create_user(email="ana@example.com", password="secret123")
    coupon_id = make_coupon(code="SAVE10", discount=10)

    api = ApiClient("http://salonbook.test", transport=httpx.WSGITransport(app=app))
    api.sign_in("ana@example.com", "secret123")

    today = date.today()
    wizard = BookingWizard(api, salon_id=salon["id"], today=today)
    wizard.toggle_service(salon["services"][0])
    wizard.advance()
    wizard.select_date(today + timedelta(days=1))
    wizard.select_time("13:00")
    wizard.advance()
    wizard.select_payment("cash")
    wizard.advance()
    assert wizard.apply_coupon("save10") is True
    assert wizard.confirm() is True

    assert wizard.step is WizardStep.SUCCESS
    assert wizard.booking["totalPrice"] == 27.0
    assert wizard.booking["paymentMethod"] == "Pay at Salon"
    assert wizard.booking["paymentIntentId"] is None
    assert wizard.booking["status"] == "upcoming"

    with app.app_context():
        assert Booking.query.count() == 1
        assert db.session.get(Coupon, coupon_id).used_count == 1


def test_free_card_booking_through_the_real_api(app, create_user, salon, make_coupon) -> None:
    create_user(email="ana@example.com", password="secret123")
    make_coupon(code="FREE", discount=100)

    api = ApiClient("http://salonbook.test", transport=httpx.WSGITransport(app=app))
    api.sign_in("ana@example.com", "secret123")

    today = date.today()
    wizard = BookingWizard(api, salon_id=salon["id"], today=today)
    wizard.toggle_service(salon["services"][0])
    wizard.advance()
    wizard.select_date(today + timedelta(days=1))
    wizard.select_time("09:30")
    wizard.advance()
    wizard.select_payment("card")
    wizard.advance()
    assert wizard.apply_coupon("FREE") is True
    assert wizard.total == Decimal("0.00")

    assert wizard.confirm() is True, wizard.error
    assert wizard.booking["totalPrice"] == 0.0
    assert wizard.booking["paymentMethod"] == "Credit Card"
    assert wizard.booking["paymentIntentId"] is None
