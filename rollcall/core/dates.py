"""
Date normalization.

Every date that crosses the store boundary, or comes in from a consumer,
is reduced to a canonical YYYY-MM-DD key before it is used to index the
attendance cache or the draft overlay.
"""

import re
from datetime import date, datetime

from dateutil.parser import isoparse

from rollcall.core.errors import InvalidDate

_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_date(value) -> str:
    """Strip any time-of-day/timezone suffix. Non-strings become ""."""
    if not isinstance(value, str):
        return ""
    value = value.strip()
    if "T" in value:
        value = value.split("T")[0]
    elif " " in value:
        value = value.split(" ")[0]
    return value.strip()


def is_date_key(value: str) -> bool:
    if not _DATE_KEY.match(value):
        return False
    try:
        isoparse(value)
    except ValueError:
        return False
    return True


def to_date_key(value) -> str:
    """Normalize consumer input and fail fast on anything that is not a calendar date."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    key = normalize_date(value)
    if not is_date_key(key):
        raise InvalidDate(value)
    return key
