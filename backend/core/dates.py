"""
Date key helpers for the archive.

A DateKey is an ISO calendar date string (YYYY-MM-DD) identifying one strip.
"""
import re
from datetime import date, timedelta
from typing import Iterator, Optional

from core.config import ARCHIVE_START_DATE, ARCHIVE_END_DATE

DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_key(value: str) -> Optional[date]:
    """Return the calendar date for a DateKey, or None if it is not a valid date."""
    if not isinstance(value, str) or not DATE_KEY_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def is_valid_date_key(value: str) -> bool:
    """Check format and calendar validity (2023-02-30 is rejected)."""
    return parse_date_key(value) is not None


def is_within_archive(
    value: str,
    start: str = ARCHIVE_START_DATE,
    end: str = ARCHIVE_END_DATE,
) -> bool:
    """Check that a DateKey falls inside the archive's known bounds."""
    if not is_valid_date_key(value):
        return False
    return start <= value <= end


def iter_archive_dates(
    start: str = ARCHIVE_START_DATE,
    end: str = ARCHIVE_END_DATE,
) -> Iterator[str]:
    """Yield every DateKey from start to end inclusive."""
    current = parse_date_key(start)
    last = parse_date_key(end)
    if current is None or last is None:
        return
    while current <= last:
        yield current.isoformat()
        current += timedelta(days=1)

