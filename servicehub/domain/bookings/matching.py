"""
Provider matching rules for assigning bookings.

Times are naive UTC throughout. Slot keys and availability windows compare
the booking's UTC date ("YYYY-MM-DD") and UTC clock time ("HH:MM").
"""

import logging
import re
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, User
from ...shared.validators import AVAILABILITY_WINDOW_PATTERN

logger = logging.getLogger(__name__)

IMMEDIATE_WINDOW = timedelta(minutes=5)
BUSY_STATUSES = ("assigned", "in-progress")
LOCATION_SPLIT = re.compile(r"[\s,]+")


class AvailabilityError(ValueError):
    """The provider's availability does not cover the booking"""


def to_naive_utc(value: datetime) -> datetime:
    """Store and compare datetimes as naive UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def slot_key(scheduled_time: datetime) -> tuple[str, str]:
    """(date, time) pair used to look up a service slot"""
    return scheduled_time.strftime("%Y-%m-%d"), scheduled_time.strftime("%H:%M")


def is_immediate(scheduled_time: datetime, now: Optional[datetime] = None) -> bool:
    """A booking within five minutes of now skips availability checks"""
    now = now or datetime.utcnow()
    return abs(scheduled_time - now) < IMMEDIATE_WINDOW


def check_availability(availability: Optional[str], scheduled_time: datetime) -> None:
    """
    Raise AvailabilityError unless the availability string covers the time.

    "Available" covers everything; a "YYYY-MM-DD HH:MM-HH:MM" window covers
    its own date between start and end inclusive.
    """
    if availability == "Available":
        return
    if not availability or " " not in availability:
        raise AvailabilityError("Provider availability is not set or invalid")

    match = AVAILABILITY_WINDOW_PATTERN.match(availability)
    if not match:
        logger.error(f"❌ Unparseable provider availability: {availability}")
        raise AvailabilityError("Invalid provider availability format")

    window_date = match.group(1)
    start = f"{match.group(2)}:{match.group(3)}"
    end = f"{match.group(4)}:{match.group(5)}"
    booking_date, booking_time = slot_key(scheduled_time)
    if window_date != booking_date or not start <= booking_time <= end:
        raise AvailabilityError("Provider is not available at the scheduled time")


def is_available_for(availability: Optional[str], scheduled_time: datetime) -> bool:
    try:
        check_availability(availability, scheduled_time)
    except AvailabilityError:
        return False
    return True


def day_bounds(scheduled_time: datetime) -> tuple[datetime, datetime]:
    start = datetime.combine(scheduled_time.date(), time.min)
    return start, start + timedelta(days=1)


def has_day_conflict(
    db: Session, provider_id: int, scheduled_time: datetime, exclude_booking_id: Optional[int] = None
) -> bool:
    """True when the provider already has an assigned or in-progress booking that day"""
    start, end = day_bounds(scheduled_time)
    query = db.query(Booking).filter(
        Booking.provider_id == provider_id,
        Booking.scheduled_time >= start,
        Booking.scheduled_time < end,
        Booking.status.in_(BUSY_STATUSES),
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return db.query(query.exists()).scalar()


def location_matches(booking_location: Optional[str], provider_address: Optional[str]) -> bool:
    """The booking location must contain the provider's address (case-insensitive)"""
    if not booking_location or not provider_address:
        return True
    return provider_address.strip().lower() in booking_location.lower()


def location_words(location: str) -> list[str]:
    return [w for w in LOCATION_SPLIT.split(location.lower()) if w]


def address_shares_word(provider_address: Optional[str], location: str) -> bool:
    """Providers without an address match any location"""
    if not provider_address:
        return True
    address = provider_address.lower()
    return any(word in address for word in location_words(location))


def find_available_providers(db: Session, booking: Booking, now: Optional[datetime] = None) -> list[User]:
    """Active providers with the service's category who are free for this booking"""
    category = booking.service.category if booking.service else None
    if not category:
        return []

    immediate = is_immediate(booking.scheduled_time, now)
    candidates = (
        db.query(User)
        .filter(User.role == "provider", User.status == "active")
        .order_by(User.id.asc())
        .all()
    )

    suitable = []
    for provider in candidates:
        if category not in (provider.skills or []):
            continue
        if not address_shares_word(provider.location_full_address, booking.location):
            continue
        if has_day_conflict(db, provider.id, booking.scheduled_time):
            logger.debug(f"Provider {provider.id} excluded: conflicting booking")
            continue
        if not immediate and not is_available_for(provider.availability, booking.scheduled_time):
            logger.debug(f"Provider {provider.id} excluded: availability {provider.availability}")
            continue
        suitable.append(provider)

    logger.info(f"🔍 Booking {booking.id}: {len(suitable)} of {len(candidates)} providers suitable")
    return suitable
