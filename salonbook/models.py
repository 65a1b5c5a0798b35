"""Database models for the salon booking backend."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from .extensions import db


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _money(value: Decimal | float | None) -> float:
    return float(value) if value is not None else 0.0


class BookingStatus(str, Enum):
    UPCOMING = "upcoming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class User(db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    role = db.Column(
        db.Enum(
            "user",
            "admin",
            name="user_role",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default="user",
        server_default="user",
    )
    phone = db.Column(db.String(30), nullable=False, default="")
    avatar = db.Column(db.String(500), nullable=False, default="")
    nickname = db.Column(db.String(100), nullable=False, default="")
    gender = db.Column(db.String(30), nullable=False, default="")
    dob = db.Column(db.String(30), nullable=False, default="")
    loyalty_points = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    auth_account = db.relationship(
        "AuthAccount", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.user_id,
            "fullName": self.full_name,
            "email": self.email,
            "role": self.role,
            "phone": self.phone,
            "avatar": self.avatar,
            "nickname": self.nickname,
            "gender": self.gender,
            "dob": self.dob,
            "loyaltyPoints": self.loyalty_points,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class AuthAccount(db.Model):
    __tablename__ = "auth_accounts"

    auth_account_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    user = db.relationship("User", back_populates="auth_account")


class Salon(db.Model):
    __tablename__ = "salons"

    salon_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    image = db.Column(db.String(500), nullable=False, default="")
    address = db.Column(db.String(255), nullable=False, default="")
    distance = db.Column(db.String(30), nullable=False, default="0 km")
    rating = db.Column(db.Float, nullable=False, default=0)
    review_count = db.Column(db.Integer, nullable=False, default=0)
    is_open = db.Column(db.Boolean, nullable=False, default=True, server_default="1")
    open_hours = db.Column(db.String(60), nullable=False, default="9:00 AM - 9:00 PM")
    phone = db.Column(db.String(30), nullable=False, default="")
    about = db.Column(db.Text, nullable=False, default="")
    website = db.Column(db.String(255), nullable=False, default="")
    latitude = db.Column(db.Float, nullable=False, default=0)
    longitude = db.Column(db.Float, nullable=False, default=0)
    gallery = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    services = db.relationship("Service", back_populates="salon", order_by="Service.service_id")
    packages = db.relationship("Package", back_populates="salon", order_by="Package.package_id")
    specialists = db.relationship(
        "Specialist", back_populates="salon", order_by="Specialist.specialist_id"
    )
    reviews = db.relationship(
        "Review", back_populates="salon", order_by="Review.created_at.desc()"
    )

    def to_dict(self, detail: bool = False) -> dict[str, object]:
        data: dict[str, object] = {
            "id": self.salon_id,
            "name": self.name,
            "image": self.image,
            "address": self.address,
            "distance": self.distance,
            "rating": self.rating,
            "reviewCount": self.review_count,
            "isOpen": bool(self.is_open),
            "openHours": self.open_hours,
            "phone": self.phone,
            "about": self.about,
            "website": self.website,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "gallery": list(self.gallery or []),
        }
        if detail:
            data["services"] = [s.to_dict() for s in self.services]
            data["packages"] = [p.to_dict() for p in self.packages]
            data["specialists"] = [s.to_dict() for s in self.specialists]
            data["reviews"] = [r.to_dict() for r in self.reviews]
        return data


class Service(db.Model):
    """A bookable offering priced in dollars and cents."""

    __tablename__ = "services"

    service_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration = db.Column(db.String(60), nullable=False, default="")
    image = db.Column(db.String(500), nullable=False, default="")
    category = db.Column(db.String(100), nullable=False, default="")

    salon = db.relationship("Salon", back_populates="services")

    __table_args__ = (db.CheckConstraint("price >= 0", name="ck_services_price_non_negative"),)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "salonId": self.salon_id,
            "name": self.name,
            "price": _money(self.price),
            "duration": self.duration,
            "image": self.image,
            "category": self.category,
        }


class Package(db.Model):
    __tablename__ = "packages"

    package_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    original_price = db.Column(db.Numeric(10, 2), nullable=False)
    services = db.Column(db.JSON, nullable=False, default=list)
    image = db.Column(db.String(500), nullable=False, default="")

    salon = db.relationship("Salon", back_populates="packages")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.package_id,
            "salonId": self.salon_id,
            "name": self.name,
            "price": _money(self.price),
            "originalPrice": _money(self.original_price),
            "services": list(self.services or []),
            "image": self.image,
        }


class Specialist(db.Model):
    __tablename__ = "specialists"

    specialist_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    role = db.Column(db.String(100), nullable=False)
    image = db.Column(db.String(500), nullable=False, default="")
    rating = db.Column(db.Float, nullable=False, default=0)

    salon = db.relationship("Salon", back_populates="specialists")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.specialist_id,
            "salonId": self.salon_id,
            "name": self.name,
            "role": self.role,
            "image": self.image,
            "rating": self.rating,
        }


class Review(db.Model):
    __tablename__ = "reviews"

    review_id = db.Column(db.Integer, primary_key=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=True)
    user_name = db.Column(db.String(150), nullable=False)
    user_image = db.Column(db.String(500), nullable=False, default="")
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    salon = db.relationship("Salon", back_populates="reviews")

    __table_args__ = (db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.review_id,
            "salonId": self.salon_id,
            "userId": self.user_id,
            "userName": self.user_name,
            "userImage": self.user_image,
            "rating": self.rating,
            "comment": self.comment,
            "date": self.created_at.date().isoformat() if self.created_at else "",
        }


class Coupon(db.Model):
    """Discount codes; ``usage_limit == 0`` means unlimited."""

    __tablename__ = "coupons"

    coupon_id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_type = db.Column(
        db.Enum(
            "percentage",
            "fixed",
            name="discount_type",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default="percentage",
        server_default="percentage",
    )
    # ISO YYYY-MM-DD; compared as a string against today's date.
    expiry_date = db.Column(db.String(10), nullable=False)
    usage_limit = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    used_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    active = db.Column(db.Boolean, nullable=False, default=True, server_default="1")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.coupon_id,
            "code": self.code,
            "discount": _money(self.discount),
            "type": self.discount_type,
            "expiryDate": self.expiry_date,
            "usageLimit": self.usage_limit,
            "usedCount": self.used_count,
            "active": bool(self.active),
        }


class Booking(db.Model):
    __tablename__ = "bookings"

    booking_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, index=True)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    salon_name = db.Column(db.String(150), nullable=False)
    salon_image = db.Column(db.String(500), nullable=False, default="")
    services = db.Column(db.JSON, nullable=False, default=list)
    date = db.Column(db.String(30), nullable=False)
    time = db.Column(db.String(10), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(
        db.Enum(
            *[s.value for s in BookingStatus],
            name="booking_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default=BookingStatus.UPCOMING.value,
        server_default=BookingStatus.UPCOMING.value,
    )
    payment_method = db.Column(db.String(50), nullable=False, default="")
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupons.coupon_id"), nullable=True)
    payment_intent_id = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    user = db.relationship("User")
    salon = db.relationship("Salon")
    coupon = db.relationship("Coupon")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.booking_id,
            "userId": self.user_id,
            "salonId": self.salon_id,
            "salonName": self.salon_name,
            "salonImage": self.salon_image,
            "services": list(self.services or []),
            "date": self.date,
            "time": self.time,
            "totalPrice": _money(self.total_price),
            "status": self.status,
            "paymentMethod": self.payment_method,
            "couponId": self.coupon_id,
            "paymentIntentId": self.payment_intent_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Bookmark(db.Model):
    __tablename__ = "bookmarks"

    bookmark_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False)
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    __table_args__ = (db.UniqueConstraint("user_id", "salon_id", name="uq_bookmarks_user_salon"),)


class Message(db.Model):
    """Conversation line between a user and a salon (or the system admin)."""

    __tablename__ = "messages"

    message_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, index=True)
    # NULL for broadcasts sent by the platform admin.
    salon_id = db.Column(db.Integer, db.ForeignKey("salons.salon_id"), nullable=True)
    salon_name = db.Column(db.String(150), nullable=False)
    salon_image = db.Column(db.String(500), nullable=False, default="")
    content = db.Column(db.Text, nullable=False)
    sender = db.Column(
        db.Enum("user", "salon", name="message_sender", native_enum=False, validate_strings=True),
        nullable=False,
        default="salon",
        server_default="salon",
    )
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.message_id,
            "userId": self.user_id,
            "salonId": self.salon_id,
            "salonName": self.salon_name,
            "salonImage": self.salon_image,
            "content": self.content,
            "sender": self.sender,
            "read": bool(self.is_read),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Notification(db.Model):
    __tablename__ = "notifications"

    notification_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    notification_type = db.Column(
        db.Enum(
            "system",
            "booking",
            "loyalty",
            "message",
            name="notification_type",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        default="system",
        server_default="system",
    )
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.notification_id,
            "userId": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.notification_type,
            "read": bool(self.is_read),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
