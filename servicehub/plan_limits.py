"""
Plan limits and utilities for subscription-based booking restrictions.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from .config import FREE_TIER_BOOKING_LIMIT
from .models import Plan, User

BILLING_CYCLE_DAYS = 30
EXPIRY_WARNING_DAYS = 3


def get_booking_limit(db: Session, user: User) -> int:
    """Get the booking limit for a provider's current tier"""
    tier = (user.subscription_tier or "free").lower()
    if tier == "free":
        return FREE_TIER_BOOKING_LIMIT

    plan = db.query(Plan).filter(Plan.name.ilike(tier)).first()
    if not plan:
        # Tier without a plan row (deleted or not yet seeded) falls back to free
        return FREE_TIER_BOOKING_LIMIT
    return plan.booking_limit


def _calculate_next_reset_date(subscription_start: datetime, current_time: datetime) -> datetime:
    """
    Calculate the next reset date based on subscription start date.
    Reset happens every 30 days from the subscription start date.
    """
    days_since_start = (current_time - subscription_start).days
    cycles_passed = max(days_since_start, 0) // BILLING_CYCLE_DAYS
    return subscription_start + timedelta(days=(cycles_passed + 1) * BILLING_CYCLE_DAYS)


def check_and_reset_booking_counter(user: User, db: Session) -> None:
    """
    Check if the billing cycle has rolled over and reset the counter if needed.
    """
    now = datetime.utcnow()
    subscription_start = user.subscription_start_date or user.created_at or now

    if user.booking_reset_date is None:
        user.booking_reset_date = _calculate_next_reset_date(subscription_start, now)
        db.commit()
        return

    if now >= user.booking_reset_date:
        user.current_booking_count = 0
        user.booking_reset_date = _calculate_next_reset_date(subscription_start, now)
        db.commit()


def can_accept_booking(user: User, db: Session) -> tuple:
    """
    Check if a provider can take another booking this cycle.
    Returns (can_accept, error_message).
    """
    check_and_reset_booking_counter(user, db)

    limit = get_booking_limit(db, user)
    if (user.current_booking_count or 0) < limit:
        return (True, None)

    tier = (user.subscription_tier or "free").capitalize()
    return (
        False,
        f"Provider has reached the {tier} plan limit of {limit} bookings for this cycle.",
    )


def increment_booking_count(user: User, db: Session) -> None:
    """Count an assigned booking against the provider's cycle"""
    check_and_reset_booking_counter(user, db)
    user.current_booking_count = (user.current_booking_count or 0) + 1
    db.commit()


def decrement_booking_count(user: User, db: Session) -> None:
    """Give a booking back when an assigned booking is cancelled or rejected"""
    check_and_reset_booking_counter(user, db)
    if (user.current_booking_count or 0) > 0:
        user.current_booking_count -= 1
        db.commit()


def reset_subscription(user: User, tier: str, status: str) -> None:
    """Move a provider onto a tier and start a fresh booking cycle. Caller commits."""
    now = datetime.utcnow()
    user.subscription_tier = tier
    user.subscription_status = status
    user.current_booking_count = 0
    if tier == "free":
        user.subscription_start_date = None
        user.booking_reset_date = None
        user.dodo_subscription_id = None
    else:
        user.subscription_start_date = now
        user.booking_reset_date = _calculate_next_reset_date(now, now)


def days_until_expiry(user: User, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days left in the current paid cycle, or None for free or unstarted tiers"""
    if not user.subscription_start_date or (user.subscription_tier or "free") == "free":
        return None
    now = now or datetime.utcnow()
    expiry = _calculate_next_reset_date(user.subscription_start_date, now)
    remaining = expiry - now
    # Round partial days up so "expires in 1 day" covers the last 24 hours
    return remaining.days + (1 if remaining.seconds else 0)


def subscription_status_message(user: User, now: Optional[datetime] = None) -> Optional[str]:
    """Human readable warning about the provider's subscription, if any"""
    if user.subscription_status == "past_due":
        return "Payment required to restore active status."

    days_left = days_until_expiry(user, now)
    if days_left is not None and 0 < days_left <= EXPIRY_WARNING_DAYS:
        return f"Subscription expires in {days_left} day{'s' if days_left != 1 else ''}."
    return None


def get_usage_stats(user: User, db: Session) -> dict:
    """Current cycle usage for a provider"""
    check_and_reset_booking_counter(user, db)
    limit = get_booking_limit(db, user)
    current = user.current_booking_count or 0
    return {
        "subscriptionTier": user.subscription_tier,
        "subscriptionStatus": user.subscription_status,
        "currentBookingCount": current,
        "bookingLimit": limit,
        "remaining": max(0, limit - current),
        "subscriptionStartDate": user.subscription_start_date,
        "resetDate": user.booking_reset_date,
        "subscriptionStatusMessage": subscription_status_message(user),
    }
