"""Tests for booking creation, listing, cancellation and status changes."""
from __future__ import annotations

import pytest

from salonbook import bookings as booking_service
from salonbook.errors import InvalidTransition, ValidationError
from salonbook.extensions import db
from salonbook.models import Booking, BookingStatus, Coupon, Notification


def booking_payload(salon_id: int, **overrides) -> dict:
    payload = {
        "salonId": salon_id,
        "services": ["Precision Haircut"],
        "date": "2026-11-02",
        "time": "10:00",
        "totalPrice": 30,
        "paymentMethod": "Pay at Salon",
    }
    payload.update(overrides)
    return payload


def test_create_booking(app, client, user, salon) -> None:
    response = client.post("/api/bookings", json=booking_payload(salon["id"]), headers=user["headers"])

    assert response.status_code == 201
    data = response.get_json()
    assert data["status"] == "upcoming"
    assert data["salonName"] == "Belle Curls"
    assert data["salonImage"] == "belle.jpg"
    assert data["totalPrice"] == 30.0
    assert data["paymentIntentId"] is None

    with app.app_context():
        notes = Notification.query.filter_by(user_id=user["id"]).all()
        assert [n.title for n in notes] == ["Booking Confirmed"]


def test_create_booking_requires_auth(client, salon) -> None:
    response = client.post("/api/bookings", json=booking_payload(salon["id"]))

    assert response.status_code == 401


@pytest.mark.parametrize(
    "overrides",
    [
        {"services": []},
        {"services": "Precision Haircut"},
        {"totalPrice": -1},
        {"totalPrice": "lots"},
        {"totalPrice": "NaN"},
        {"salonName": 12},
        {"date": ""},
        {"time": None},
        {"salonId": None},
    ],
)
def test_create_booking_rejects_bad_payload(client, user, salon, overrides) -> None:
    response = client.post("/api/bookings", json=booking_payload(salon["id"], **overrides), headers=user["headers"])

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_create_booking_rejects_json_nan_total(client, user, salon) -> None:
    # Flask's JSON parser accepts a bare NaN literal.
    body = (
        '{"salonId": %d, "services": ["Precision Haircut"], "date": "2026-11-02", '
        '"time": "10:00", "totalPrice": NaN, "paymentMethod": "Pay at Salon"}' % salon["id"]
    )

    response = client.post("/api/bookings", data=body, content_type="application/json", headers=user["headers"])

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_create_booking_unknown_salon(client, user, salon) -> None:
    response = client.post("/api/bookings", json=booking_payload(9999), headers=user["headers"])

    assert response.status_code == 404


def test_create_booking_redeems_coupon(app, client, user, salon, make_coupon) -> None:
    coupon_id = make_coupon(code="SAVE10", usage_limit=10)

    response = client.post(
        "/api/bookings",
        json=booking_payload(salon["id"], couponId=coupon_id, totalPrice=27),
        headers=user["headers"],
    )

    assert response.status_code == 201
    assert response.get_json()["couponId"] == coupon_id
    with app.app_context():
        assert db.session.get(Coupon, coupon_id).used_count == 1


def test_exhausted_coupon_leaves_no_partial_booking(app, client, user, salon, make_coupon) -> None:
    coupon_id = make_coupon(code="GONE", usage_limit=1, used_count=1)

    response = client.post(
        "/api/bookings",
        json=booking_payload(salon["id"], couponId=coupon_id),
        headers=user["headers"],
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "coupon_limit_reached"
    with app.app_context():
        assert Booking.query.count() == 0
        assert Notification.query.count() == 0
        assert db.session.get(Coupon, coupon_id).used_count == 1


def test_list_bookings_newest_first_and_scoped_to_user(client, user, create_user, make_booking) -> None:
    other_id, _ = create_user(email="other@example.com")
    first = make_booking(user["id"])
    second = make_booking(user["id"])
    make_booking(other_id)

    response = client.get("/api/bookings", headers=user["headers"])

    assert response.status_code == 200
    assert [b["id"] for b in response.get_json()] == [second, first]


def test_cancel_is_idempotent(app, client, user, make_booking) -> None:
    booking_id = make_booking(user["id"])

    first = client.put(f"/api/bookings/{booking_id}/cancel", headers=user["headers"])
    second = client.put(f"/api/bookings/{booking_id}/cancel", headers=user["headers"])

    assert first.status_code == second.status_code == 200
    assert first.get_json()["status"] == second.get_json()["status"] == "cancelled"
    with app.app_context():
        cancelled = Notification.query.filter_by(user_id=user["id"], title="Booking Cancelled").count()
        assert cancelled == 1


def test_cancel_someone_elses_booking_is_404(client, user, create_user, make_booking) -> None:
    other_id, _ = create_user(email="other@example.com")
    booking_id = make_booking(other_id)

    response = client.put(f"/api/bookings/{booking_id}/cancel", headers=user["headers"])

    assert response.status_code == 404


def test_cancel_completed_booking_is_rejected(client, user, make_booking) -> None:
    booking_id = make_booking(user["id"], status="completed")

    response = client.put(f"/api/bookings/{booking_id}/cancel", headers=user["headers"])

    assert response.status_code == 409
    assert response.get_json()["error"] == "invalid_transition"


def test_transition_table(app, user, make_booking) -> None:
    booking_id = make_booking(user["id"])

    with app.app_context():
        booking = db.session.get(Booking, booking_id)
        booking_service.change_status(booking, "completed")
        assert booking.status == BookingStatus.COMPLETED.value

        with pytest.raises(InvalidTransition):
            booking_service.change_status(booking, BookingStatus.UPCOMING)
        with pytest.raises(InvalidTransition):
            booking_service.change_status(booking, "cancelled")


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(ValidationError):
        booking_service.parse_status("pending")
    assert booking_service.parse_status(" Cancelled ") is BookingStatus.CANCELLED
