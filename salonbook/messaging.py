"""User/salon conversations and the scripted salon auto-reply."""
from __future__ import annotations

import threading

from flask import Flask, current_app
from sqlalchemy.exc import SQLAlchemyError

from .errors import NotFoundError, ValidationError
from .extensions import db
from .models import Message, Salon, User

AUTO_REPLY_TEXT = "Thanks for your message! We'll get back to you shortly."
ADMIN_SENDER_NAME = "System Admin"


def _content(value: object) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError("content must be a string")
    content = (value or "").strip()
    if not content:
        raise ValidationError("content is required")
    return content


def send_message(user: User, payload: dict) -> Message:
    """Store a user's message to a salon and schedule the salon's auto-reply."""
    content = _content(payload.get("content"))
    try:
        salon_id = int(payload.get("salonId"))
    except (TypeError, ValueError):
        raise ValidationError("salonId is required") from None

    salon = db.session.get(Salon, salon_id)
    if salon is None:
        raise NotFoundError("Salon not found")

    message = Message(
        user_id=user.user_id,
        salon_id=salon.salon_id,
        salon_name=salon.name,
        salon_image=salon.image,
        content=content,
        sender="user",
        is_read=True,
    )
    db.session.add(message)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    schedule_auto_reply(user.user_id, salon)
    return message


def _store_auto_reply(user_id: int, salon_id: int, salon_name: str, salon_image: str) -> None:
    db.session.add(
        Message(
            user_id=user_id,
            salon_id=salon_id,
            salon_name=salon_name,
            salon_image=salon_image,
            content=AUTO_REPLY_TEXT,
            sender="salon",
        )
    )
    db.session.commit()


def _reply_in_context(app: Flask, *args) -> None:
    with app.app_context():
        try:
            _store_auto_reply(*args)
        except SQLAlchemyError as exc:
            db.session.rollback()
            app.logger.exception("Failed to store salon auto-reply", exc_info=exc)


def schedule_auto_reply(user_id: int, salon: Salon) -> threading.Timer | None:
    """Reply on behalf of the salon after ``AUTO_REPLY_DELAY_SECONDS``.

    A delay of zero replies inline and returns ``None``.
    """
    args = (user_id, salon.salon_id, salon.name, salon.image)
    delay = float(current_app.config.get("AUTO_REPLY_DELAY_SECONDS", 2.0))
    if delay <= 0:
        _reply_in_context(current_app._get_current_object(), *args)
        return None

    timer = threading.Timer(delay, _reply_in_context, args=(current_app._get_current_object(), *args))
    timer.daemon = True
    timer.start()
    return timer


def conversations(user: User) -> list[dict[str, object]]:
    """One entry per salon, newest conversation first, with its latest line."""
    rows = (
        Message.query.filter(Message.user_id == user.user_id)
        .order_by(Message.created_at.desc(), Message.message_id.desc())
        .all()
    )
    grouped: dict[int | None, dict[str, object]] = {}
    for m in rows:
        entry = grouped.get(m.salon_id)
        if entry is None:
            entry = grouped[m.salon_id] = {
                "salonId": m.salon_id,
                "salonName": m.salon_name,
                "salonImage": m.salon_image,
                "lastMessage": m.content,
                "time": m.created_at.isoformat() if m.created_at else None,
                "unread": 0,
            }
        if not m.is_read and m.sender == "salon":
            entry["unread"] += 1
    return list(grouped.values())


def conversation(user: User, salon_id: int | None, mark_read: bool = True) -> list[Message]:
    """Messages with one salon, oldest first. Reading marks salon lines as read."""
    rows = (
        Message.query.filter(Message.user_id == user.user_id, Message.salon_id == salon_id)
        .order_by(Message.created_at.asc(), Message.message_id.asc())
        .all()
    )
    if mark_read:
        unread = [m for m in rows if not m.is_read]
        if unread:
            for m in unread:
                m.is_read = True
            try:
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                raise
    return rows


def broadcast(target_user_id: object, content: object) -> list[Message]:
    """Send a system-admin message to one user or to ``"all"`` users."""
    content = _content(content)

    if target_user_id == "all":
        recipients = [u.user_id for u in User.query.all()]
    else:
        try:
            recipient_id = int(target_user_id)
        except (TypeError, ValueError):
            raise ValidationError("targetUserId must be a user id or 'all'") from None
        if db.session.get(User, recipient_id) is None:
            raise NotFoundError("User not found")
        recipients = [recipient_id]

    sent = [
        Message(
            user_id=uid,
            salon_id=None,
            salon_name=ADMIN_SENDER_NAME,
            salon_image="",
            content=content,
            sender="salon",
        )
        for uid in recipients
    ]
    db.session.add_all(sent)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return sent
