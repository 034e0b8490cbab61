"""Shared validation utilities"""

import re
from typing import Optional

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

MIN_AGE = 18
MAX_AGE = 100
MIN_PHONE_DIGITS = 10


def validate_email(email: str) -> str:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email is empty or its format is invalid
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValueError("Email is required")

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_phone(phone: str) -> str:
    """
    Validate a phone number has at least 10 digits.

    Formatting characters are kept; only the digit count is checked.

    Raises:
        ValueError: If the number is empty or too short
    """
    phone = (phone or "").strip()
    if not phone:
        raise ValueError("Phone number is required")

    digits = re.sub(r"\D", "", phone)
    if len(digits) < MIN_PHONE_DIGITS:
        raise ValueError(f"Phone number must have at least {MIN_PHONE_DIGITS} digits")

    return phone


def validate_age(age: Optional[int]) -> Optional[int]:
    if age is None:
        return age
    if age < MIN_AGE or age > MAX_AGE:
        raise ValueError(f"Age must be between {MIN_AGE} and {MAX_AGE}")
    return age


def normalize_time(value: str) -> str:
    """
    Validate an HH:MM time and zero-pad the hour ("9:00" -> "09:00").

    Raises:
        ValueError: If the value is not a valid 24h time
    """
    if not value or not TIME_PATTERN.match(value.strip()):
        raise ValueError("Invalid time format (HH:MM)")

    hours, minutes = value.strip().split(":")
    return f"{int(hours):02d}:{minutes}"


def validate_week_days(days: list[int]) -> list[int]:
    """Validate ISO weekdays (1=Monday ... 7=Sunday); returns a sorted, de-duplicated list"""
    if not days:
        raise ValueError("At least one weekday is required")

    for day in days:
        if day < 1 or day > 7:
            raise ValueError("Weekdays must be between 1 (Monday) and 7 (Sunday)")

    return sorted(set(days))


def validate_optional_phone(phone: Optional[str]) -> Optional[str]:
    """Blank counts as not given; anything else must pass validate_phone"""
    if phone is None or not phone.strip():
        return None
    return validate_phone(phone)
