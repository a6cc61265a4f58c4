"""Shared validation utilities"""

import re
from datetime import datetime
from typing import Optional, Union

from ..models import SERVICE_CATEGORIES, USER_ROLES

SLOT_DATE_FORMAT = "%Y-%m-%d"
SLOT_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a phone number loosely (international, 7 to 15 digits).
    Keeps a leading + and drops spaces, dashes, dots and parentheses.
    """
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if not 7 <= len(digits) <= 15:
        raise ValueError("Phone number must contain between 7 and 15 digits")

    return f"+{digits}" if phone.startswith("+") else digits


def validate_role(role: Optional[str]) -> str:
    if role not in USER_ROLES:
        raise ValueError(f"Role must be one of: {', '.join(USER_ROLES)}")
    return role


def validate_category(category: Optional[str]) -> str:
    if category not in SERVICE_CATEGORIES:
        raise ValueError(f"Category must be one of: {', '.join(SERVICE_CATEGORIES)}")
    return category


def validate_slot_date(value: str) -> str:
    """Slot dates are calendar days in YYYY-MM-DD form"""
    try:
        datetime.strptime(value, SLOT_DATE_FORMAT)
    except (TypeError, ValueError) as e:
        raise ValueError("Date must be in YYYY-MM-DD format") from e
    return value


def validate_slot_time(value: str) -> str:
    """Slot times are 24h HH:MM strings"""
    if not isinstance(value, str) or not SLOT_TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    return value


def clean_slots(slots: Optional[dict]) -> dict:
    """
    Normalize an availability map: keep string times only, de-duplicate and
    sort them, and drop dates left with no times.
    """
    cleaned = {}
    for date, times in (slots or {}).items():
        validate_slot_date(date)
        valid_times = sorted({t for t in (times or []) if isinstance(t, str) and t.strip()})
        for t in valid_times:
            validate_slot_time(t)
        if valid_times:
            cleaned[date] = valid_times
    return cleaned


def parse_skills(skills: Union[str, list, None]) -> list[str]:
    """Accept skills as a comma separated string or a list"""
    if skills is None:
        return []
    if isinstance(skills, str):
        items = skills.split(",")
    else:
        items = skills
    return [str(s).strip() for s in items if str(s).strip()]


AVAILABILITY_WINDOW_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2}) ([01]\d|2[0-3]):([0-5]\d)-([01]\d|2[0-3]):([0-5]\d)$"
)


def validate_availability(value: Optional[str]) -> Optional[str]:
    """Availability is Available, Unavailable or a "YYYY-MM-DD HH:MM-HH:MM" window"""
    if value is None:
        return value
    value = value.strip()
    if value in ("Available", "Unavailable"):
        return value
    match = AVAILABILITY_WINDOW_PATTERN.match(value)
    if not match:
        raise ValueError('Availability must be "Available", "Unavailable" or "YYYY-MM-DD HH:MM-HH:MM"')
    validate_slot_date(match.group(1))
    if match.group(2, 3) >= match.group(4, 5):
        raise ValueError("Availability window must end after it starts")
    return value
