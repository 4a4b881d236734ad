from datetime import timedelta

import pytest

from booking_engine.automations.reminders import BookingReminderJob, send_booking_reminders
from booking_engine.core.config import settings
from booking_engine.models import BookingStatus
from booking_engine.services.email import ConsoleEmailService
from booking_engine.services.notification_service import BookingNotifier
from booking_engine.services.sms_service import SMSService


@pytest.fixture
def job(notifier, settings_provider):
    return BookingReminderJob(notifier=notifier, settings_provider=settings_provider)


def test_reminder_window_selection(job, runner, db, notifier, tenant, make_booking, now):
    due = make_booking(tenant, start_time=now + timedelta(hours=24, minutes=5))
    too_late = make_booking(tenant, start_time=now + timedelta(hours=26))
    too_soon = make_booking(tenant, start_time=now + timedelta(hours=23))

    result = send_booking_reminders(job=job, runner=runner)

    assert result.success
    assert result.processed == 1
    assert result.message == "Processed 1 booking reminders"
    assert notifier.booking_ids("reminder") == [due.id]
    for booking, expected in ((due, True), (too_late, False), (too_soon, False)):
        db.refresh(booking)
        assert booking.reminder_sent is expected


def test_second_run_sends_nothing(job, runner, notifier, tenant, make_booking, now):
    make_booking(tenant, start_time=now + timedelta(hours=24, minutes=10))

    first = send_booking_reminders(job=job, runner=runner)
    second = send_booking_reminders(job=job, runner=runner)

    assert first.processed == 1
    assert second.processed == 0
    assert len(notifier.booking_ids("reminder")) == 1


def test_confirmed_bookings_are_reminded_but_settled_ones_are_not(
    job, runner, notifier, tenant, make_booking, now
):
    start = now + timedelta(hours=24, minutes=20)
    confirmed = make_booking(tenant, start_time=start, status=BookingStatus.CONFIRMED.value)
    make_booking(tenant, start_time=start, status=BookingStatus.CANCELLED.value)

    send_booking_reminders(job=job, runner=runner)

    assert notifier.booking_ids("reminder") == [confirmed.id]


def test_hours_before_option_overrides_tenant(
    job, runner, notifier, make_tenant, make_booking, now
):
    tenant = make_tenant(reminder_hours_before=48)
    soon = make_booking(tenant, start_time=now + timedelta(hours=2, minutes=30))
    make_booking(tenant, start_time=now + timedelta(hours=48, minutes=30))

    result = send_booking_reminders(hours_before=2, job=job, runner=runner)

    assert result.processed == 1
    assert notifier.booking_ids("reminder") == [soon.id]


def test_tenant_lead_time_applies_by_default(job, runner, notifier, make_tenant, make_booking, now):
    tenant = make_tenant(reminder_hours_before=2)
    soon = make_booking(tenant, start_time=now + timedelta(hours=2, minutes=30))
    make_booking(tenant, start_time=now + timedelta(hours=24, minutes=30))

    send_booking_reminders(job=job, runner=runner)

    assert notifier.booking_ids("reminder") == [soon.id]


def test_tenant_with_notifications_off_is_skipped(
    job, runner, notifier, make_tenant, make_booking, now
):
    tenant = make_tenant(email_notifications=False, sms_notifications=False)
    make_booking(tenant, start_time=now + timedelta(hours=24, minutes=5))

    result = send_booking_reminders(job=job, runner=runner)

    assert result.processed == 0
    assert result.failed == 0
    assert notifier.calls == []


def test_partial_failure_keeps_going(job, runner, db, notifier, tenant, make_booking, now):
    bookings = [
        make_booking(tenant, start_time=now + timedelta(hours=24, minutes=5 * i))
        for i in range(1, 4)
    ]
    broken = bookings[1]
    notifier.raise_for[broken.id] = RuntimeError("smtp timeout")

    result = send_booking_reminders(job=job, runner=runner)

    assert result.success is True
    assert result.processed == 2
    assert result.failed == 1
    assert result.errors == [f"Booking {broken.id}: smtp timeout"]
    assert result.message == "Processed 2 booking reminders, 1 failed"
    db.refresh(broken)
    assert broken.reminder_sent is False


def test_undelivered_reminder_is_retried_next_run(
    job, runner, db, notifier, tenant, make_booking, now
):
    booking = make_booking(tenant, start_time=now + timedelta(hours=24, minutes=5))
    notifier.fail_for[booking.id] = "Email failed: mailbox full"

    first = send_booking_reminders(job=job, runner=runner)
    del notifier.fail_for[booking.id]
    second = send_booking_reminders(job=job, runner=runner)

    assert first.failed == 1
    assert first.errors == [f"Booking {booking.id}: Email failed: mailbox full"]
    assert second.processed == 1
    db.refresh(booking)
    assert booking.reminder_sent is True


def test_one_channel_failing_is_a_notice(job, runner, db, notifier, tenant, make_booking, now):
    booking = make_booking(tenant, start_time=now + timedelta(hours=24, minutes=5))
    notifier.partial_fail_for[booking.id] = "SMS failed: carrier rejected"

    result = send_booking_reminders(job=job, runner=runner)

    assert result.processed == 1
    assert result.failed == 0
    assert result.errors == [f"Booking {booking.id}: SMS failed: carrier rejected"]
    db.refresh(booking)
    assert booking.reminder_sent is True


def test_unscheduled_booking_is_reported_as_malformed(
    job, runner, db, notifier, tenant, make_booking, now
):
    legacy = make_booking(tenant, start_time=None)

    result = send_booking_reminders(job=job, runner=runner)

    assert result.failed == 1
    assert result.errors == [f"Booking {legacy.id}: Booking has no start time"]
    assert notifier.calls == []


def test_sms_only_reminder_waits_while_sms_is_switched_off(
    runner, db, settings_provider, make_tenant, make_booking, now, monkeypatch
):
    monkeypatch.setattr(settings, "sms_enabled", False)
    tenant = make_tenant(email_notifications=False, sms_notifications=True)
    booking = make_booking(
        tenant, customer_email=None, start_time=now + timedelta(hours=24, minutes=5)
    )
    notifier = BookingNotifier(email_service=ConsoleEmailService(), sms_service=SMSService())
    job = BookingReminderJob(notifier=notifier, settings_provider=settings_provider)

    result = send_booking_reminders(job=job, runner=runner)

    assert result.processed == 0
    assert result.failed == 1
    assert result.errors == [f"Booking {booking.id}: SMS delivery disabled"]
    db.refresh(booking)
    assert booking.reminder_sent is False
