"""
Timezone utilities for the booking engine.

Booking times are stored in UTC; customer-facing text uses the tenant's
timezone.
"""

from datetime import datetime
from typing import Dict, Optional

import pytz


def get_timezone(name: Optional[str]) -> pytz.BaseTzInfo:
    """
    Resolve a tenant timezone name.

    Unknown or empty names fall back to UTC so a bad tenant setting never
    blocks a notification.
    """
    if not name:
        return pytz.UTC
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def convert_to_timezone(dt: datetime, tz_name: Optional[str]) -> datetime:
    """
    Convert a UTC datetime to the named timezone.

    Args:
        dt: Datetime to convert; naive values are assumed UTC
        tz_name: IANA timezone name
    """
    if dt.tzinfo is None:
        # Assume UTC if no timezone info
        dt = pytz.UTC.localize(dt)
    return dt.astimezone(get_timezone(tz_name))


def format_booking_time(dt: datetime, tz_name: Optional[str]) -> Dict[str, str]:
    """Date and time strings used in customer notifications."""
    local = convert_to_timezone(dt, tz_name)
    return {
        "date": local.strftime("%A, %B %d, %Y"),
        "time": local.strftime("%I:%M %p").lstrip("0"),
    }
