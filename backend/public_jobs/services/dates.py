"""
D-day Calculator - Posting Date Arithmetic

The recruitment API encodes every date as an 8-digit ``YYYYMMDD`` string.
This module turns those strings into calendar dates and day offsets.

Conventions:
    - Day counts are calendar-day differences (``date`` subtraction), never
      elapsed hours divided by 24, so DST and timezones cannot shift them.
    - A missing or malformed date is "unknown": ``parse_date`` returns None
      and nothing here raises on it.
    - A posting without an end date is treated as open indefinitely.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional

DATE_PATTERN = re.compile(r"^\d{8}$")

ENDING_SOON_DAYS = 3
NEW_POSTING_DAYS = 7


def parse_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an 8-digit ``YYYYMMDD`` string.

    Args:
        value: Raw date string from the upstream API

    Returns:
        The calendar date, or None when the input is empty, not 8 digits,
        or not a real date (e.g. ``20240231``)
    """
    if not value or not DATE_PATTERN.match(value):
        return None
    try:
        return datetime.strptime(value, "%Y%m%d").date()
    except ValueError:
        return None


def day_count(end_date: Optional[str], reference: Optional[date] = None) -> Optional[int]:
    """
    Signed calendar days from ``reference`` (default: today) to ``end_date``.

    A deadline today is 0, tomorrow 1, yesterday -1. Returns None when the
    end date is unknown; callers sort those last.
    """
    end = parse_date(end_date)
    if end is None:
        return None
    if reference is None:
        reference = date.today()
    return (end - reference).days


def is_ending_soon(end_date: Optional[str], reference: Optional[date] = None) -> bool:
    days = day_count(end_date, reference)
    return days is not None and 0 <= days <= ENDING_SOON_DAYS


def is_new_posting(start_date: Optional[str], reference: Optional[datetime] = None) -> bool:
    """True when the posting started strictly after ``reference - 7 days``."""
    start = parse_date(start_date)
    if start is None:
        return False
    if reference is None:
        reference = datetime.now()
    return datetime.combine(start, time.min) > reference - timedelta(days=NEW_POSTING_DAYS)


def is_ongoing(end_date: Optional[str], reference: Optional[date] = None) -> bool:
    """No end date counts as ongoing; otherwise the deadline must not have passed."""
    if not end_date:
        return True
    days = day_count(end_date, reference)
    return days is not None and days >= 0


def dday_label(days: Optional[int]) -> Optional[str]:
    """Display label for a day count: ``마감``, ``D-DAY`` or ``D-n``."""
    if days is None:
        return None
    if days < 0:
        return "마감"
    if days == 0:
        return "D-DAY"
    return f"D-{days}"
