"""
Date Helpers

Parsing and formatting shared by the direct pipeline mappers, the derived
binding functions and the validator. EMR dates arrive as date/datetime
objects (SQLAlchemy) or as strings (JSON, SQLite).

Author: Shubham Singh
Date: December 2025
"""

import math
from datetime import date, datetime
from typing import Any, Optional

from rips_generation.core.constants import DAYS_PER_YEAR


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Best-effort conversion of a date-like value to datetime.

    Accepts datetime, date, and ISO-8601 strings ("2025-01-31",
    "2025-01-31 08:30:00", "2025-01-31T08:30:00Z"). Returns None for
    anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def to_iso_date(value: Any) -> str:
    """Format as YYYY-MM-DD, or "" when unparseable."""
    parsed = parse_datetime(value)
    return parsed.strftime("%Y-%m-%d") if parsed else ""


def to_iso_datetime(value: Any) -> str:
    """Format as YYYY-MM-DD HH:MM (RIPS attention timestamp), or ""."""
    parsed = parse_datetime(value)
    return parsed.strftime("%Y-%m-%d %H:%M") if parsed else ""


def ceil_days_between(start: Any, end: Any) -> int:
    """
    Whole days between two dates, rounded up. 0 when either is missing.

    >>> ceil_days_between("2025-01-01", "2025-01-08")
    7
    """
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None or end_dt is None:
        return 0
    if (start_dt.tzinfo is None) != (end_dt.tzinfo is None):
        start_dt = start_dt.replace(tzinfo=None)
        end_dt = end_dt.replace(tzinfo=None)
    seconds = abs((end_dt - start_dt).total_seconds())
    return int(math.ceil(seconds / 86400))


def compute_age(birth_date: Any, reference_date: Optional[date] = None) -> int:
    """
    Age in whole years: floor(days since birth / 365.25).

    Returns -1 when the birth date is missing or unparseable.
    """
    born = parse_datetime(birth_date)
    if born is None:
        return -1
    today = reference_date or date.today()
    days = (today - born.date()).days
    return int(math.floor(days / DAYS_PER_YEAR))
