"""Shared pytest fixtures: an app on in-memory SQLite plus data factories."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the project root is available on sys.path so tests can import the salonbook package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from salonbook import create_app  # noqa: E402
from salonbook.auth import build_token, set_password  # noqa: E402
from salonbook.extensions import db  # noqa: E402
from salonbook.models import Booking, Coupon, Salon, Service, User  # noqa: E402


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SECRET_KEY": "test-secret",
        "STRIPE_SECRET_KEY": "sk_test_123",
        "STRIPE_WEBHOOK_SECRET": "whsec_test",
        "AUTO_REPLY_DELAY_SECONDS": 0,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def create_user(app):
    """Return a factory making a user with a password; yields ``(user_id, token)``."""

    def _create(email="ana@example.com", password="secret123", role="user", full_name="Ana Client"):
        with app.app_context():
            user = User(full_name=full_name, email=email, role=role)
            db.session.add(user)
            set_password(user, password)
            db.session.commit()
            return user.user_id, build_token(user)

    return _create


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(create_user):
    user_id, token = create_user()
    return {"id": user_id, "token": token, "headers": bearer(token)}


@pytest.fixture
def auth_headers(user):
    return user["headers"]


@pytest.fixture
def admin_headers(create_user):
    _, token = create_user(email="admin@example.com", role="admin", full_name="Admin User")
    return bearer(token)


@pytest.fixture
def salon(app):
    """A salon offering three services priced $30, $25 and $35."""
    with app.app_context():
        salon = Salon(name="Belle Curls", image="belle.jpg", address="6993 Meadow Valley Terrace, New York")
        db.session.add(salon)
        db.session.flush()
        services = [
            Service(salon_id=salon.salon_id, name="Precision Haircut", price=30, duration="30 min"),
            Service(salon_id=salon.salon_id, name="Blow Dry & Style", price=25, duration="25 min"),
            Service(salon_id=salon.salon_id, name="Gel Manicure", price=35, duration="35 min"),
        ]
        db.session.add_all(services)
        db.session.commit()
        return {"id": salon.salon_id, "services": [s.service_id for s in services]}


@pytest.fixture
def make_coupon(app):
    def _make(code="SAVE10", discount=10, discount_type="percentage", expiry_date="2099-12-31",
              usage_limit=0, used_count=0, active=True):
        with app.app_context():
            coupon = Coupon(
                code=code,
                discount=discount,
                discount_type=discount_type,
                expiry_date=expiry_date,
                usage_limit=usage_limit,
                used_count=used_count,
                active=active,
            )
            db.session.add(coupon)
            db.session.commit()
            return coupon.coupon_id

    return _make


@pytest.fixture
def make_booking(app, salon):
    def _make(user_id, status="upcoming", total_price=60):
        with app.app_context():
            booking = Booking(
                user_id=user_id,
                salon_id=salon["id"],
                salon_name="Belle Curls",
                services=["Precision Haircut"],
                date="2026-11-02",
                time="10:00",
                total_price=total_price,
                status=status,
                payment_method="Pay at Salon",
            )
            db.session.add(booking)
            db.session.commit()
            return booking.booking_id

    return _make
