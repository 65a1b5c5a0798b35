"""Routes for bookmarks, messages, notifications, reviews and loyalty."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import messaging
from .auth import login_required
from .extensions import db
from .loyalty import loyalty_summary
from .models import Bookmark, Notification, Review, Salon

bp_ext = Blueprint("api_ext", __name__)


# BOOKMARKS
@bp_ext.get("/api/bookmarks")
@login_required
def get_bookmarks() -> tuple[list[int], int]:
    """Ids of the salons the user has bookmarked."""
    try:
        rows = (
            Bookmark.query.filter(Bookmark.user_id == g.current_user.user_id)
            .order_by(Bookmark.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch bookmarks", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load bookmarks"}), 500
    return jsonify([b.salon_id for b in rows]), 200


@bp_ext.post("/api/bookmarks/toggle")
@login_required
def toggle_bookmark() -> tuple[dict[str, bool], int]:
    """Add the salon to bookmarks, or remove it if already there.
    ---
    tags:
      - Bookmarks
    responses:
      200:
        description: New bookmark state
      400:
        description: Missing salonId
      404:
        description: Salon not found
    """
    payload = request.get_json(silent=True) or {}
    try:
        salon_id = int(payload.get("salonId"))
    except (TypeError, ValueError):
        return jsonify({"error": "invalid_payload", "message": "salonId is required"}), 400

    user_id = g.current_user.user_id
    try:
        if db.session.get(Salon, salon_id) is None:
            return jsonify({"error": "not_found", "message": "Salon not found"}), 404

        existing = Bookmark.query.filter_by(user_id=user_id, salon_id=salon_id).first()
        if existing:
            db.session.delete(existing)
            is_bookmarked = False
        else:
            db.session.add(Bookmark(user_id=user_id, salon_id=salon_id))
            is_bookmarked = True
        db.session.commit()
    except IntegrityError:
        # A parallel toggle already inserted the row.
        db.session.rollback()
        is_bookmarked = True
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to toggle bookmark", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not update bookmark"}), 500

    return jsonify({"isBookmarked": is_bookmarked}), 200


# MESSAGING
@bp_ext.get("/api/messages")
@login_required
def list_conversations() -> tuple[list[dict[str, object]], int]:
    """One row per salon conversation with its latest message."""
    try:
        rows = messaging.conversations(g.current_user)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch messages", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load messages"}), 500
    return jsonify(rows), 200


@bp_ext.get("/api/messages/admin")
@login_required
def get_admin_conversation() -> tuple[list[dict[str, object]], int]:
    """Broadcasts from the platform admin."""
    try:
        rows = messaging.conversation(g.current_user, None)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch admin conversation", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load messages"}), 500
    return jsonify([m.to_dict() for m in rows]), 200


@bp_ext.get("/api/messages/<int:salon_id>")
@login_required
def get_conversation(salon_id: int) -> tuple[list[dict[str, object]], int]:
    try:
        rows = messaging.conversation(g.current_user, salon_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch conversation", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load messages"}), 500
    return jsonify([m.to_dict() for m in rows]), 200


@bp_ext.post("/api/messages")
@login_required
def send_message() -> tuple[dict[str, object], int]:
    """Send a message to a salon; the salon answers automatically.
    ---
    tags:
      - Messages
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            salonId:
              type: integer
            content:
              type: string
          required:
            - salonId
            - content
    responses:
      201:
        description: Message sent
      400:
        description: Invalid payload
      404:
        description: Salon not found
    """
    payload = request.get_json(silent=True) or {}
    try:
        message = messaging.send_message(g.current_user, payload)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to send message", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not send message"}), 500
    return jsonify(message.to_dict()), 201


# NOTIFICATIONS
@bp_ext.get("/api/notifications")
@login_required
def get_notifications() -> tuple[list[dict[str, object]], int]:
    """Newest first; ``?unread_only=true`` filters to unread."""
    unread_only = request.args.get("unread_only", "false").lower() == "true"
    try:
        query = Notification.query.filter(Notification.user_id == g.current_user.user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        rows = query.order_by(
            Notification.created_at.desc(), Notification.notification_id.desc()
        ).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch notifications", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not load notifications"}), 500
    return jsonify([n.to_dict() for n in rows]), 200


@bp_ext.put("/api/notifications/<int:notification_id>/read")
@login_required
def mark_notification_read(notification_id: int) -> tuple[dict[str, object], int]:
    try:
        notification = Notification.query.filter_by(
            notification_id=notification_id, user_id=g.current_user.user_id
        ).first()
        if notification is None:
            return jsonify({"error": "not_found", "message": "Notification not found"}), 404

        notification.is_read = True
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to mark notification as read", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not update notification"}), 500
    return jsonify({"success": True, "notification": notification.to_dict()}), 200


# REVIEWS
@bp_ext.post("/api/reviews")
@login_required
def create_review() -> tuple[dict[str, object], int]:
    """Review a salon and refresh its average rating.
    ---
    tags:
      - Reviews
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            salonId:
              type: integer
            rating:
              type: integer
              minimum: 1
              maximum: 5
            comment:
              type: string
    responses:
      201:
        description: Review created
      400:
        description: Invalid payload
      404:
        description: Salon not found
    """
    payload = request.get_json(silent=True) or {}
    try:
        salon_id = int(payload.get("salonId"))
        rating = int(payload.get("rating"))
    except (TypeError, ValueError):
        return jsonify({"error": "invalid_payload", "message": "salonId and rating are required"}), 400
    if not 1 <= rating <= 5:
        return jsonify({"error": "invalid_payload", "message": "rating must be between 1 and 5"}), 400
    comment = payload.get("comment") or ""
    if not isinstance(comment, str):
        return jsonify({"error": "invalid_payload", "message": "comment must be a string"}), 400
    comment = comment.strip()

    user = g.current_user
    try:
        salon = db.session.get(Salon, salon_id)
        if salon is None:
            return jsonify({"error": "not_found", "message": "Salon not found"}), 404

        review = Review(
            salon_id=salon_id,
            user_id=user.user_id,
            user_name=user.full_name or "Anonymous",
            user_image=user.avatar or "",
            rating=rating,
            comment=comment,
        )
        db.session.add(review)
        db.session.flush()

        count, average = (
            db.session.query(func.count(Review.review_id), func.avg(Review.rating))
            .filter(Review.salon_id == salon_id)
            .one()
        )
        salon.review_count = count
        salon.rating = round(float(average or 0), 1)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create review", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Could not save review"}), 500

    return jsonify(review.to_dict()), 201


# LOYALTY
@bp_ext.get("/api/loyalty")
@login_required
def get_loyalty() -> tuple[dict[str, object], int]:
    """Points balance with the reward tiers it unlocks."""
    return jsonify(loyalty_summary(g.current_user)), 200
