"""Shared validation utilities"""

import re
from datetime import date, datetime, time
from typing import Optional

VALID_LANGUAGES = ("vietnamese", "english", "simplified", "traditional", "french", "korean")
DEFAULT_LANGUAGE = "vietnamese"
DEFAULT_SERVICE = "General Checkup"

NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 100
PHONE_MAX_LENGTH = 20
SERVICE_MAX_LENGTH = 100
MESSAGE_MAX_LENGTH = 500

# local-part@domain.tld, no whitespace
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Trimmed, lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not is_valid_email(email):
        raise ValueError("Invalid email format")

    return email


def validate_language(language: Optional[str]) -> Optional[str]:
    """Normalize a language to lowercase and check it is one of VALID_LANGUAGES"""
    if language is None:
        return language

    language = language.strip().lower()
    if language not in VALID_LANGUAGES:
        raise ValueError(f"Invalid language. Must be one of: {', '.join(VALID_LANGUAGES)}")

    return language


def clean_text(value: Optional[str], max_length: int) -> str:
    """Trim a string and cut it to max_length characters"""
    if not value:
        return ""
    return value.strip()[:max_length]


def parse_calendar_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD calendar date.

    Raises:
        ValueError: If the string is not an ISO calendar date
    """
    return date.fromisoformat(value.strip())


def parse_appointment_date(value: str) -> datetime:
    """
    Parse a requested appointment date.

    Accepts a plain calendar date (midnight is assumed) or an ISO-8601
    datetime, with a trailing "Z" treated as UTC. Timezone-aware values are
    stored without their offset.

    Raises:
        ValueError: If the string is neither
    """
    value = value.strip()
    if len(value) == 10:
        return datetime.combine(parse_calendar_date(value), time.min)

    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    return parsed.replace(tzinfo=None)
