"""Loyalty points: earned on completed bookings, shown against reward tiers."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR

from .extensions import db
from .models import Booking, Notification, User
from .pricing import to_money

POINTS_PER_DOLLAR = 10


@dataclass(frozen=True)
class Reward:
    key: str
    title: str
    points: int


REWARDS = (
    Reward("free_hair_wash", "Free Hair Wash", 150),
    Reward("beard_trim_discount", "50% Off Beard Trim", 300),
    Reward("free_premium_haircut", "Free Premium Haircut", 800),
    Reward("vip_barber_choice", "VIP Barber Choice", 1500),
)


def points_for(total_price: object) -> int:
    """Points for a booking total: 10 per whole dollar spent."""
    dollars = to_money(total_price).to_integral_value(rounding=ROUND_FLOOR)
    return max(0, int(dollars) * POINTS_PER_DOLLAR)


def award_for_booking(booking: Booking) -> int:
    """Credit the booking owner's balance; the caller commits."""
    points = points_for(booking.total_price)
    if points == 0:
        return 0

    user = db.session.get(User, booking.user_id)
    if user is None:
        return 0

    user.loyalty_points = (user.loyalty_points or 0) + points
    db.session.add(
        Notification(
            user_id=user.user_id,
            title="Points Earned",
            message=f"You earned {points} loyalty points for your visit to {booking.salon_name}!",
            notification_type="loyalty",
        )
    )
    return points


def loyalty_summary(user: User) -> dict[str, object]:
    balance = user.loyalty_points or 0
    next_reward = next((r for r in REWARDS if r.points > balance), None)
    return {
        "points": balance,
        "pointsPerDollar": POINTS_PER_DOLLAR,
        "rewards": [
            {"id": r.key, "title": r.title, "points": r.points, "locked": balance < r.points}
            for r in REWARDS
        ],
        "nextReward": (
            {"id": next_reward.key, "pointsNeeded": next_reward.points - balance}
            if next_reward
            else None
        ),
    }
