"""Bearer-token authentication helpers."""
from __future__ import annotations

from functools import wraps

from flask import current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db
from .models import AuthAccount, User

TOKEN_SALT = "auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def build_token(user: User) -> str:
    return _serializer().dumps({"user_id": user.user_id, "role": user.role})


def get_token_identity() -> int | None:
    """Return the user id carried by the Authorization header, if valid."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None

    token = auth_header[7:]
    max_age = current_app.config.get("TOKEN_MAX_AGE_SECONDS", 30 * 24 * 60 * 60)
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("Rejected expired auth token")
        return None
    except BadSignature:
        return None
    user_id = payload.get("user_id") if isinstance(payload, dict) else None
    return int(user_id) if user_id is not None else None


def login_required(view):
    """Resolve the token's user into ``g.current_user`` or answer 401."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = get_token_identity()
        user = db.session.get(User, user_id) if user_id else None
        if user is None:
            return jsonify({"error": "unauthorized", "message": "Not authenticated"}), 401
        g.current_user = user
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if g.current_user.role != "admin":
            return jsonify({"error": "forbidden", "message": "Not authorized as admin"}), 403
        return view(*args, **kwargs)

    return wrapper


def set_password(user: User, password: str) -> AuthAccount:
    account = user.auth_account
    if account is None:
        account = AuthAccount(user=user, password_hash="")
        db.session.add(account)
    account.password_hash = generate_password_hash(password)
    return account


def verify_password(user: User, password: str) -> bool:
    account = user.auth_account
    if account is None or not account.password_hash:
        return False
    return check_password_hash(account.password_hash, password)
