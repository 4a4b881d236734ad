"""Booking lifecycle rules shared across services, tasks and routes.

Edges:
    pending   -> confirmed | cancelled | no-show
    confirmed -> completed | cancelled | no-show

completed, cancelled and no-show are terminal. No edge returns to an
earlier state, so re-running a transition against a record that already
moved is always a no-op.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Optional, Union

from ..core.exceptions import InvalidStatusTransitionException, ValidationException
from ..models.booking import BookingStatus

StatusLike = Union[BookingStatus, str]

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

# Progress order along the happy path; terminal side exits share the top rank
_ORDINAL: Dict[BookingStatus, int] = {
    BookingStatus.PENDING: 0,
    BookingStatus.CONFIRMED: 1,
    BookingStatus.COMPLETED: 2,
    BookingStatus.CANCELLED: 2,
    BookingStatus.NO_SHOW: 2,
}


def coerce_status(value: StatusLike) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValidationException(
            f"Unknown booking status: {value}", code="UNKNOWN_STATUS"
        ) from None


def ordinal(status: StatusLike) -> int:
    return _ORDINAL[coerce_status(status)]


def is_terminal(status: StatusLike) -> bool:
    return not ALLOWED_TRANSITIONS[coerce_status(status)]


def can_transition(current: StatusLike, new: StatusLike) -> bool:
    """True if ``current -> new`` is an edge of the lifecycle."""
    try:
        return coerce_status(new) in ALLOWED_TRANSITIONS[coerce_status(current)]
    except ValidationException:
        return False


def ensure_transition(current: StatusLike, new: StatusLike) -> BookingStatus:
    """Validate ``current -> new`` and return the target status.

    Raises:
        InvalidStatusTransitionException: if the edge does not exist
    """
    if not can_transition(current, new):
        raise InvalidStatusTransitionException(str(_value(current)), str(_value(new)))
    return coerce_status(new)


def sources_for(target: StatusLike) -> FrozenSet[BookingStatus]:
    """Statuses from which ``target`` is reachable in one step."""
    goal = coerce_status(target)
    return frozenset(src for src, dests in ALLOWED_TRANSITIONS.items() if goal in dests)


def no_show_deadline(start_time: datetime, grace_minutes: int) -> datetime:
    """Instant from which an unattended booking counts as a no-show."""
    return start_time + timedelta(minutes=grace_minutes)


def is_no_show_due(start_time: Optional[datetime], grace_minutes: int, now: datetime) -> bool:
    if start_time is None:
        return False
    return no_show_deadline(start_time, grace_minutes) <= now


def _value(status: StatusLike) -> str:
    return status.value if isinstance(status, BookingStatus) else str(status)
