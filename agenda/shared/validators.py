"""Shared validation utilities"""

import re
from datetime import datetime
from typing import Optional

DATE_REGEX = r"^\d{4}-\d{2}-\d{2}$"
DATE_PATTERN = re.compile(DATE_REGEX)
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


def validate_date_string(value: str) -> str:
    """
    Validate a YYYY-MM-DD calendar date.

    Raises:
        ValueError: If the string is not a real calendar date
    """
    if not value or not DATE_PATTERN.match(value.strip()):
        raise ValueError("Data deve estar no formato YYYY-MM-DD")
    value = value.strip()
    datetime.strptime(value, "%Y-%m-%d")
    return value


def validate_local_time(value: str) -> str:
    """Validate HH:MM (seconds are accepted and dropped)"""
    if not value or not TIME_PATTERN.match(value.strip()):
        raise ValueError("Hora deve estar no formato HH:MM")
    return value.strip()[:5]


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Blank strings become None"""
    if value is None:
        return None
    value = value.strip()
    return value or None
