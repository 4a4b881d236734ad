import pytest

from booking_engine.core.exceptions import ValidationException
from booking_engine.services.notification_templates import (
    NotificationKind,
    render_notification,
    split_email_override,
)

CONTEXT = {
    "customer_name": "Jamie",
    "service_name": "Haircut",
    "date": "Thursday, March 12, 2026",
    "time": "10:00 AM",
    "staff_name": "Alex",
    "notes": "",
    "company_name": "Studio One",
    "contact_email": "",
    "contact_phone": "",
}


def test_default_reminder():
    rendered = render_notification(NotificationKind.REMINDER, CONTEXT)

    assert rendered.subject == "Reminder: Haircut Booking"
    assert rendered.email_body.startswith("Hello Jamie,")
    assert "Staff: Alex" in rendered.email_body
    assert rendered.email_body.endswith("Studio One")
    assert rendered.sms_body == (
        "Reminder: You have a booking for Haircut on Thursday, March 12, 2026 at 10:00 AM. "
        "See you soon!"
    )


def test_staff_line_omitted_without_staff():
    rendered = render_notification(NotificationKind.CONFIRMATION, {**CONTEXT, "staff_name": ""})

    assert rendered.subject == "Booking Confirmation: Haircut"
    assert "Staff:" not in rendered.email_body
    assert "Notes:" not in rendered.email_body


def test_no_show_subject_uses_company():
    rendered = render_notification(NotificationKind.NO_SHOW, CONTEXT)

    assert rendered.subject == "Missed Appointment - Studio One"
    assert "missed your appointment with Studio One" in rendered.email_body


def test_email_override_with_subject_and_body():
    rendered = render_notification(
        NotificationKind.REMINDER,
        CONTEXT,
        email_override="See you {{ date }}|Hi {{ customer_name }}, {{ service_name }} at {{ time }}",
    )

    assert rendered.subject == "See you Thursday, March 12, 2026"
    assert rendered.email_body == "Hi Jamie, Haircut at 10:00 AM"


def test_email_override_without_subject_keeps_default_subject():
    rendered = render_notification(
        NotificationKind.REMINDER, CONTEXT, email_override="Just a body for {{ customer_name }}"
    )

    assert rendered.subject == "Reminder: Haircut Booking"
    assert rendered.email_body == "Just a body for Jamie"


def test_sms_override_tolerates_unknown_variables():
    rendered = render_notification(
        NotificationKind.REMINDER, CONTEXT, sms_override="{{ service_name }}{{ coupon_code }}!"
    )

    assert rendered.sms_body == "Haircut!"


def test_broken_override_raises_validation_error():
    with pytest.raises(ValidationException) as exc_info:
        render_notification(NotificationKind.REMINDER, CONTEXT, sms_override="{% if %}")
    assert exc_info.value.code == "INVALID_TEMPLATE"


def test_sandbox_blocks_attribute_escape():
    with pytest.raises(ValidationException):
        render_notification(
            NotificationKind.REMINDER,
            CONTEXT,
            sms_override="{{ customer_name.__class__.__mro__[1].__subclasses__() }}",
        )


def test_split_email_override():
    assert split_email_override("Subject|Body|with pipe") == ("Subject", "Body|with pipe")
    assert split_email_override("Only body") == (None, "Only body")
    assert split_email_override("|Body") == (None, "Body")
