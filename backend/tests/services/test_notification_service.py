from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from booking_engine.core.exceptions import MalformedBookingException, NotificationDeliveryException
from booking_engine.models import Booking
from booking_engine.services.notification_service import BookingNotifier, build_template_context
from booking_engine.services.sms_service import SMSStatus
from booking_engine.services.tenant_settings import TenantSettings


def _booking(**overrides):
    data = dict(
        id="01HBOOKING0000000000000001",
        tenant_id="t1",
        customer_name="Jamie",
        customer_email="jamie@example.com",
        customer_phone="+15555550100",
        service_name="Haircut",
        staff_name="Alex",
        start_time=datetime(2026, 1, 15, 15, 0, tzinfo=timezone.utc),
        duration_minutes=30,
    )
    data.update(overrides)
    return Booking(**data)


def _tenant(**overrides):
    data = dict(
        tenant_id="t1",
        tenant_name="Studio",
        company_name="Studio One",
        email_notifications=True,
        sms_notifications=True,
        timezone="America/New_York",
    )
    data.update(overrides)
    return TenantSettings(**data)


@pytest.fixture
def email_service():
    return MagicMock()


@pytest.fixture
def sms_service():
    service = MagicMock()
    service.send_sms.return_value = ({"sid": "SM1"}, SMSStatus.SUCCESS)
    return service


@pytest.fixture
def notifier(email_service, sms_service):
    return BookingNotifier(email_service=email_service, sms_service=sms_service)


def test_template_context_uses_tenant_timezone():
    context = build_template_context(_booking(), _tenant())

    assert context["date"] == "Thursday, January 15, 2026"
    assert context["time"] == "10:00 AM"
    assert context["company_name"] == "Studio One"
    assert context["staff_name"] == "Alex"


def test_template_context_requires_start():
    with pytest.raises(MalformedBookingException):
        build_template_context(_booking(start_time=None), _tenant())


def test_reminder_goes_to_both_channels(notifier, email_service, sms_service):
    outcome = notifier.send_reminder(_booking(), _tenant())

    assert outcome.email and outcome.sms
    assert outcome.ok
    to, subject, body = email_service.send_email.call_args.args
    assert to == "jamie@example.com"
    assert subject == "Reminder: Haircut Booking"
    assert "Hello Jamie" in body
    assert email_service.send_email.call_args.kwargs["from_name"] == "Studio One"
    sms_service.send_sms.assert_called_once()
    assert sms_service.send_sms.call_args.args[0] == "+15555550100"


def test_follow_up_offers_tenant_contact_details(notifier, email_service, sms_service):
    tenant = _tenant(contact_email="desk@studio.example", contact_phone="+15555550199")

    notifier.send_follow_up(_booking(), tenant)

    _, subject, body = email_service.send_email.call_args.args
    assert subject == "Missed Appointment - Studio One"
    assert "please contact us on +15555550199 and" in body
    assert email_service.send_email.call_args.kwargs["reply_to"] == "desk@studio.example"
    assert "contact us on +15555550199. - Studio One" in sms_service.send_sms.call_args.args[1]


def test_follow_up_without_contact_details(notifier, email_service, sms_service):
    notifier.send_follow_up(_booking(), _tenant())

    _, _, body = email_service.send_email.call_args.args
    assert "please contact us and we'll be happy to help" in body
    assert email_service.send_email.call_args.kwargs["reply_to"] is None
    assert sms_service.send_sms.call_args.args[1].endswith("please contact us. - Studio One")


def test_channel_skipped_when_disabled_or_no_contact(notifier, email_service, sms_service):
    outcome = notifier.send_confirmation(
        _booking(customer_phone=None), _tenant(email_notifications=False)
    )

    assert not outcome.delivered
    assert outcome.ok
    email_service.send_email.assert_not_called()
    sms_service.send_sms.assert_not_called()


def test_tenant_override_is_applied(notifier, email_service):
    tenant = _tenant(
        sms_notifications=False,
        notification_templates={"email": {"booking_confirmation": "Booked!|See you at {{ time }}"}},
    )

    notifier.send_confirmation(_booking(), tenant)

    _, subject, body = email_service.send_email.call_args.args
    assert subject == "Booked!"
    assert body == "See you at 10:00 AM"


def test_email_failure_does_not_block_sms(notifier, email_service, sms_service):
    email_service.send_email.side_effect = NotificationDeliveryException("email", "bounced")

    outcome = notifier.send_follow_up(_booking(), _tenant())

    assert outcome.email is False
    assert outcome.sms is True
    assert outcome.delivered
    assert outcome.errors == ["Email failed: email delivery failed: bounced"]


def test_unexpected_transport_error_is_reported(notifier, sms_service):
    sms_service.send_sms.side_effect = RuntimeError("socket closed")

    outcome = notifier.send_reminder(_booking(customer_email=None), _tenant())

    assert not outcome.delivered
    assert outcome.errors == ["SMS failed: socket closed"]


def test_disabled_sms_transport_is_not_delivered(notifier, sms_service):
    sms_service.send_sms.return_value = (None, SMSStatus.DISABLED)

    outcome = notifier.send_reminder(_booking(customer_email=None), _tenant())

    assert outcome.sms is False
    assert not outcome.delivered
    assert outcome.errors == ["SMS delivery disabled"]


def test_render_error_is_returned_not_raised(notifier, email_service):
    tenant = _tenant(notification_templates={"sms": {"booking_reminder": "{% for %}"}})

    outcome = notifier.send_reminder(_booking(), tenant)

    assert not outcome.delivered
    assert outcome.errors and "could not be rendered" in outcome.errors[0]
    email_service.send_email.assert_not_called()
