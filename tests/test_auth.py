"""Tests for signup, signin, social sign-in and the profile endpoints."""
from __future__ import annotations

from unittest.mock import patch

import pytest
from itsdangerous import SignatureExpired

from salonbook.models import Notification, User


def test_signup_returns_token_and_user(app, client) -> None:
    response = client.post(
        "/api/auth/signup",
        json={"fullName": "Ana Client", "email": "Ana@Example.com", "password": "secret123"},
    )

    assert response.status_code == 201
    data = response.get_json()
    assert data["token"]
    assert data["user"]["email"] == "ana@example.com"
    assert data["user"]["loyaltyPoints"] == 0

    with app.app_context():
        user = User.query.filter_by(email="ana@example.com").one()
        assert user.auth_account.password_hash != "secret123"
        titles = [n.title for n in Notification.query.filter_by(user_id=user.user_id)]
        assert titles == ["Welcome to Casca!"]


def test_signup_missing_fields(client) -> None:
    response = client.post("/api/auth/signup", json={"email": "ana@example.com"})

    assert response.status_code == 400


@pytest.mark.parametrize(
    "overrides",
    [{"email": 5}, {"fullName": ["Ana"]}, {"password": 123456}],
)
def test_signup_rejects_non_string_fields(client, overrides) -> None:
    body = {"fullName": "Ana Client", "email": "ana@example.com", "password": "secret123", **overrides}

    response = client.post("/api/auth/signup", json=body)

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_signup_duplicate_email(client, create_user) -> None:
    create_user(email="ana@example.com")

    response = client.post(
        "/api/auth/signup",
        json={"fullName": "Ana Again", "email": "ana@example.com", "password": "other"},
    )

    assert response.status_code == 409
    assert response.get_json()["error"] == "conflict"


def test_signin_and_me(client, create_user) -> None:
    create_user(email="ana@example.com", password="secret123")

    login = client.post("/api/auth/signin", json={"email": "ANA@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.get_json()["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.get_json()["user"]["email"] == "ana@example.com"


def test_signin_wrong_password(client, create_user) -> None:
    create_user(email="ana@example.com", password="secret123")

    response = client.post("/api/auth/signin", json={"email": "ana@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.get_json() == {"error": "unauthorized", "message": "Invalid credentials"}


def test_me_without_token(client) -> None:
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.get_json()["message"] == "Not authenticated"


def test_me_with_tampered_token(client, user) -> None:
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {user['token']}x"})

    assert response.status_code == 401


def test_me_with_expired_token(client, user) -> None:
    with patch("salonbook.auth.URLSafeTimedSerializer.loads", side_effect=SignatureExpired("expired")):
        response = client.get("/api/auth/me", headers=user["headers"])

    assert response.status_code == 401


def test_oauth_creates_then_reuses_account(client) -> None:
    first = client.post("/api/auth/oauth/google", json={"email": "sam@gmail.com", "fullName": "Sam"})
    second = client.post("/api/auth/oauth/google", json={"email": "sam@gmail.com"})

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.get_json()["user"]["id"] == second.get_json()["user"]["id"]
    assert first.get_json()["user"]["fullName"] == "Sam"


def test_oauth_apple_default_name(client) -> None:
    response = client.post("/api/auth/oauth/apple", json={"email": "hidden@privaterelay.appleid.com"})

    assert response.status_code == 201
    assert response.get_json()["user"]["fullName"] == "Apple User"


def test_signin_and_oauth_reject_non_string_fields(client) -> None:
    signin = client.post("/api/auth/signin", json={"email": "ana@example.com", "password": 42})
    oauth_email = client.post("/api/auth/oauth/google", json={"email": 5})
    oauth_avatar = client.post("/api/auth/oauth/google", json={"email": "sam@gmail.com", "avatar": {"url": "x"}})

    assert signin.status_code == oauth_email.status_code == oauth_avatar.status_code == 400
    assert oauth_avatar.get_json()["message"] == "avatar must be a string"


def test_oauth_unknown_provider(client) -> None:
    response = client.post("/api/auth/oauth/myspace", json={"email": "tom@myspace.com"})

    assert response.status_code == 404


def test_update_profile(client, user) -> None:
    response = client.put(
        "/api/auth/profile",
        json={"fullName": "Ana Maria", "phone": "+1 555 0100", "unknown": "ignored"},
        headers=user["headers"],
    )

    assert response.status_code == 200
    data = response.get_json()["user"]
    assert data["fullName"] == "Ana Maria"
    assert data["phone"] == "+1 555 0100"


def test_update_profile_rejects_empty_name(client, user) -> None:
    response = client.put("/api/auth/profile", json={"fullName": "  "}, headers=user["headers"])

    assert response.status_code == 400


def test_logout(client) -> None:
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
