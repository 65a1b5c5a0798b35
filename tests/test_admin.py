"""Tests for the admin coupon, booking and broadcast endpoints."""
from __future__ import annotations

import pytest

from salonbook.extensions import db
from salonbook.messaging import ADMIN_SENDER_NAME
from salonbook.models import Coupon, Message

NEW_COUPON = {"code": "spring15", "discount": 15, "type": "percentage", "expiryDate": "2099-06-30", "usageLimit": 50}


def test_admin_routes_require_admin(client, auth_headers) -> None:
    anonymous = client.get("/api/admin/coupons")
    regular = client.get("/api/admin/coupons", headers=auth_headers)

    assert anonymous.status_code == 401
    assert regular.status_code == 403
    assert regular.get_json()["message"] == "Not authorized as admin"


def test_create_and_list_coupons(client, admin_headers) -> None:
    created = client.post("/api/admin/coupons", json=NEW_COUPON, headers=admin_headers)

    assert created.status_code == 201
    data = created.get_json()
    assert data["code"] == "SPRING15"
    assert data["usageLimit"] == 50
    assert data["usedCount"] == 0
    assert data["active"] is True

    listing = client.get("/api/admin/coupons", headers=admin_headers)
    assert [c["code"] for c in listing.get_json()] == ["SPRING15"]


def test_create_coupon_duplicate_code(client, admin_headers, make_coupon) -> None:
    make_coupon(code="SPRING15")

    response = client.post("/api/admin/coupons", json=NEW_COUPON, headers=admin_headers)

    assert response.status_code == 409


def test_create_coupon_validation(client, admin_headers) -> None:
    bad_type = client.post("/api/admin/coupons", json={**NEW_COUPON, "type": "bogo"}, headers=admin_headers)
    bad_date = client.post("/api/admin/coupons", json={**NEW_COUPON, "expiryDate": "soon"}, headers=admin_headers)
    too_much = client.post("/api/admin/coupons", json={**NEW_COUPON, "discount": 150}, headers=admin_headers)

    assert bad_type.status_code == bad_date.status_code == too_much.status_code == 400


@pytest.mark.parametrize("discount", ["NaN", "-Infinity"])
def test_coupon_discount_must_be_finite(client, admin_headers, make_coupon, discount) -> None:
    created = client.post("/api/admin/coupons", json={**NEW_COUPON, "discount": discount}, headers=admin_headers)
    coupon_id = make_coupon(code="SAVE10")
    updated = client.put(f"/api/admin/coupons/{coupon_id}", json={"discount": discount}, headers=admin_headers)

    assert created.status_code == updated.status_code == 400
    assert created.get_json()["error"] == updated.get_json()["error"] == "invalid_payload"


def test_update_and_delete_coupon(app, client, admin_headers, make_coupon) -> None:
    coupon_id = make_coupon(code="SAVE10")

    updated = client.put(f"/api/admin/coupons/{coupon_id}", json={"active": False}, headers=admin_headers)
    assert updated.status_code == 200
    assert updated.get_json()["active"] is False
    assert updated.get_json()["code"] == "SAVE10"

    deleted = client.delete(f"/api/admin/coupons/{coupon_id}", headers=admin_headers)
    assert deleted.status_code == 200
    with app.app_context():
        assert db.session.get(Coupon, coupon_id) is None

    assert client.delete(f"/api/admin/coupons/{coupon_id}", headers=admin_headers).status_code == 404


def test_booking_status_transitions(client, user, admin_headers, make_booking) -> None:
    booking_id = make_booking(user["id"])
    url = f"/api/admin/bookings/{booking_id}/status"

    unknown = client.put(url, json={"status": "pending"}, headers=admin_headers)
    completed = client.put(url, json={"status": "completed"}, headers=admin_headers)
    reopened = client.put(url, json={"status": "upcoming"}, headers=admin_headers)

    assert unknown.status_code == 400
    assert completed.status_code == 200
    assert completed.get_json()["status"] == "completed"
    assert reopened.status_code == 409


def test_booking_status_unknown_booking(client, admin_headers) -> None:
    response = client.put("/api/admin/bookings/999/status", json={"status": "completed"}, headers=admin_headers)

    assert response.status_code == 404


def test_broadcast_to_everyone(app, client, user, admin_headers) -> None:
    response = client.post(
        "/api/admin/messages/broadcast", json={"targetUserId": "all", "content": "Holiday hours"}, headers=admin_headers
    )

    assert response.status_code == 200
    # The regular user and the admin.
    assert response.get_json() == {"success": True, "count": 2}

    thread = client.get("/api/messages/admin", headers=user["headers"])
    assert [m["content"] for m in thread.get_json()] == ["Holiday hours"]
    assert thread.get_json()[0]["salonName"] == ADMIN_SENDER_NAME


def test_broadcast_to_one_user(app, client, user, admin_headers) -> None:
    response = client.post(
        "/api/admin/messages/broadcast", json={"targetUserId": user["id"], "content": "Hi Ana"}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.get_json()["userId"] == user["id"]
    with app.app_context():
        assert Message.query.count() == 1


def test_broadcast_validation(client, admin_headers) -> None:
    empty = client.post("/api/admin/messages/broadcast", json={"targetUserId": "all"}, headers=admin_headers)
    nobody = client.post(
        "/api/admin/messages/broadcast", json={"targetUserId": 404, "content": "hello"}, headers=admin_headers
    )

    not_text = client.post(
        "/api/admin/messages/broadcast", json={"targetUserId": "all", "content": 5}, headers=admin_headers
    )

    assert empty.status_code == 400
    assert nobody.status_code == 404
    assert not_text.status_code == 400
