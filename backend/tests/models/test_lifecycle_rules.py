from datetime import datetime, timedelta, timezone

import pytest

from booking_engine.core.exceptions import InvalidStatusTransitionException, ValidationException
from booking_engine.domain.intervals import TimeWindow, intervals_overlap, reminder_window
from booking_engine.domain.lifecycle import (
    ALLOWED_TRANSITIONS,
    can_transition,
    coerce_status,
    ensure_transition,
    is_no_show_due,
    is_terminal,
    ordinal,
    sources_for,
)
from booking_engine.models import BookingStatus

T0 = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestTransitions:
    @pytest.mark.parametrize(
        "current,new",
        [
            ("pending", "confirmed"),
            ("pending", "cancelled"),
            ("pending", "no-show"),
            ("confirmed", "completed"),
            ("confirmed", "cancelled"),
            ("confirmed", "no-show"),
        ],
    )
    def test_allowed_edges(self, current, new):
        assert can_transition(current, new)
        assert ensure_transition(current, new) == BookingStatus(new)

    @pytest.mark.parametrize(
        "current,new",
        [
            ("confirmed", "pending"),
            ("pending", "completed"),
            ("completed", "confirmed"),
            ("no-show", "confirmed"),
            ("cancelled", "pending"),
            ("pending", "pending"),
        ],
    )
    def test_rejected_edges(self, current, new):
        assert not can_transition(current, new)
        with pytest.raises(InvalidStatusTransitionException) as exc_info:
            ensure_transition(current, new)
        assert exc_info.value.details == {"current_status": current, "new_status": new}

    def test_every_edge_moves_forward(self):
        for source, targets in ALLOWED_TRANSITIONS.items():
            for target in targets:
                assert ordinal(target) > ordinal(source)

    def test_terminal_statuses(self):
        assert is_terminal("completed")
        assert is_terminal(BookingStatus.NO_SHOW)
        assert not is_terminal("pending")

    def test_sources_for_no_show(self):
        assert sources_for("no-show") == {BookingStatus.PENDING, BookingStatus.CONFIRMED}

    def test_unknown_status(self):
        assert not can_transition("pending", "archived")
        with pytest.raises(ValidationException):
            coerce_status("archived")


class TestNoShowDeadline:
    def test_due_after_grace(self):
        assert is_no_show_due(T0 - timedelta(minutes=20), 15, T0)

    def test_due_exactly_at_deadline(self):
        assert is_no_show_due(T0 - timedelta(minutes=15), 15, T0)

    def test_not_due_inside_grace(self):
        assert not is_no_show_due(T0 - timedelta(minutes=10), 15, T0)

    def test_missing_start_never_due(self):
        assert not is_no_show_due(None, 15, T0)


class TestIntervals:
    def test_overlap(self):
        assert intervals_overlap(T0, T0 + timedelta(hours=1), T0 + timedelta(minutes=30), T0 + timedelta(hours=2))

    def test_adjacent_intervals_do_not_overlap(self):
        assert not intervals_overlap(T0, T0 + timedelta(hours=1), T0 + timedelta(hours=1), T0 + timedelta(hours=2))

    def test_containment_overlaps(self):
        assert intervals_overlap(T0, T0 + timedelta(hours=3), T0 + timedelta(hours=1), T0 + timedelta(hours=2))

    def test_reminder_window_is_half_open(self):
        window = reminder_window(T0, 24, 60)

        assert window == TimeWindow(T0 + timedelta(hours=24), T0 + timedelta(hours=25))
        assert window.contains(T0 + timedelta(hours=24))
        assert window.contains(T0 + timedelta(hours=24, minutes=5))
        assert not window.contains(T0 + timedelta(hours=25))
        assert not window.contains(T0 + timedelta(hours=26))
