"""
Calendar date used to key a restaurant's daily uploads.

The owner uploads "today's" exports; today is the ISO calendar date in the
configured upload timezone (UTC unless configured otherwise).
"""
from datetime import date, datetime
from typing import Optional

import pytz


def get_upload_date(now: Optional[datetime] = None, upload_timezone: Optional[str] = None) -> date:
    """
    Resolve the daily upload date for a moment in time.

    Args:
        now: The moment to convert. Naive datetimes are treated as UTC.
             Defaults to the current time.
        upload_timezone: IANA timezone string (e.g., "America/Los_Angeles").
                         Defaults to UTC.

    Returns:
        The calendar date uploads at ``now`` belong to

    Examples:
        >>> get_upload_date(datetime(2024, 1, 2, 2, 0), "UTC")
        datetime.date(2024, 1, 2)
        >>> get_upload_date(datetime(2024, 1, 2, 2, 0), "America/New_York")
        datetime.date(2024, 1, 1)
    """
    if now is None:
        now = datetime.now(pytz.UTC)
    elif now.tzinfo is None:
        now = pytz.UTC.localize(now)

    tz = pytz.timezone(upload_timezone or "UTC")
    return now.astimezone(tz).date()


def format_upload_date(day: date) -> str:
    """ISO ``YYYY-MM-DD`` form used in storage paths."""
    return day.isoformat()
