"""Default configuration read from the process environment."""
from __future__ import annotations

import os


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _database_uri() -> str:
    uri = os.environ.get("DATABASE_URL", "sqlite:///salonbook.db")
    # Heroku-style URLs still use the legacy scheme.
    if uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    return uri


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens stay valid for 30 days, matching the old session cookie.
    TOKEN_MAX_AGE_SECONDS = int(_env_float("TOKEN_MAX_AGE_SECONDS", 30 * 24 * 60 * 60))

    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    STRIPE_CURRENCY = os.environ.get("STRIPE_CURRENCY", "usd")

    AUTO_REPLY_DELAY_SECONDS = _env_float("AUTO_REPLY_DELAY_SECONDS", 2.0)

    CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
