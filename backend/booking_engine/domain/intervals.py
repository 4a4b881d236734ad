"""Half-open time interval helpers used by conflict detection and reminder windows."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import NamedTuple


class TimeWindow(NamedTuple):
    """[start, end): start inclusive, end exclusive."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open overlap test: touching intervals (end_a == start_b) do not overlap."""
    return start_a < end_b and start_b < end_a


def reminder_window(now: datetime, hours_before: int, window_minutes: int) -> TimeWindow:
    """Bookings starting inside this window are due their reminder."""
    start = now + timedelta(hours=hours_before)
    return TimeWindow(start, start + timedelta(minutes=window_minutes))
