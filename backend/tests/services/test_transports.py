from unittest.mock import MagicMock

from pydantic import SecretStr
import pytest
from twilio.base.exceptions import TwilioRestException

from booking_engine.core.config import settings
from booking_engine.core.exceptions import NotificationDeliveryException, ServiceException
from booking_engine.core.timezone_utils import format_booking_time, get_timezone
from booking_engine.services import email as email_module
from booking_engine.services.email import ConsoleEmailService, EmailService, build_email_service
from booking_engine.services.sms_service import SMSService, SMSStatus


class TestSMSService:
    def test_disabled_without_credentials(self, monkeypatch):
        monkeypatch.setattr(settings, "sms_enabled", False)

        service = SMSService()

        assert service.send_sms("+15555550100", "hi") == (None, SMSStatus.DISABLED)

    def test_sends_through_client(self):
        client = MagicMock()
        client.messages.create.return_value = MagicMock(sid="SM123", status="queued")

        response, status = SMSService(client=client).send_sms("+15555550100", "hello")

        assert status is SMSStatus.SUCCESS
        assert response["sid"] == "SM123"
        assert client.messages.create.call_args.kwargs["body"] == "hello"

    def test_long_messages_are_truncated(self):
        client = MagicMock()

        SMSService(client=client).send_sms("+15555550100", "x" * 2000)

        body = client.messages.create.call_args.kwargs["body"]
        assert len(body) == 1600
        assert body.endswith("...")

    def test_invalid_number(self):
        with pytest.raises(NotificationDeliveryException):
            SMSService(client=MagicMock()).send_sms("5555550100", "hello")

    def test_twilio_error_is_wrapped(self):
        client = MagicMock()
        client.messages.create.side_effect = TwilioRestException(
            400, "https://api.twilio.com", msg="Unverified number"
        )

        with pytest.raises(NotificationDeliveryException) as exc_info:
            SMSService(client=client).send_sms("+15555550100", "hello")
        assert "Unverified number" in exc_info.value.message


class TestEmailService:
    def test_console_provider_by_default(self, monkeypatch):
        monkeypatch.setattr(settings, "email_provider", "console")

        service = build_email_service()

        assert isinstance(service, ConsoleEmailService)
        assert service.send_email("a@example.com", "Hi", "Body")["provider"] == "console"

    def test_resend_requires_api_key(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", None)

        with pytest.raises(ServiceException):
            EmailService()

    def test_resend_send_uses_tenant_sender_name(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", SecretStr("re_test"))
        monkeypatch.setattr(settings, "from_email", "Bookings <bookings@example.com>")
        send = MagicMock(return_value={"id": "em_1"})
        monkeypatch.setattr(email_module.resend.Emails, "send", send)

        result = EmailService().send_email("a@example.com", "Hi", "Line one\n\nLine two", from_name="Studio")

        payload = send.call_args.args[0]
        assert payload["from"] == "Studio <bookings@example.com>"
        assert "reply_to" not in payload
        assert payload["html"] == "<p>Line one</p><p>Line two</p>"
        assert result == {"id": "em_1"}

    def test_resend_reply_to_is_passed_through(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", SecretStr("re_test"))
        send = MagicMock(return_value={"id": "em_2"})
        monkeypatch.setattr(email_module.resend.Emails, "send", send)

        EmailService().send_email("a@example.com", "Hi", "Body", reply_to="desk@studio.example")

        assert send.call_args.args[0]["reply_to"] == "desk@studio.example"

    def test_resend_failure_is_wrapped(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", SecretStr("re_test"))
        monkeypatch.setattr(email_module.resend.Emails, "send", MagicMock(side_effect=RuntimeError("503")))

        with pytest.raises(NotificationDeliveryException) as exc_info:
            EmailService().send_email("a@example.com", "Hi", "Body")
        assert exc_info.value.details == {"channel": "email"}


class TestTimezoneUtils:
    def test_unknown_timezone_falls_back_to_utc(self):
        assert get_timezone("Mars/Olympus").zone == "UTC"
        assert get_timezone(None).zone == "UTC"

    def test_format_booking_time_strips_leading_zero(self):
        from datetime import datetime, timezone

        formatted = format_booking_time(datetime(2026, 1, 15, 14, 5, tzinfo=timezone.utc), "UTC")

        assert formatted == {"date": "Thursday, January 15, 2026", "time": "2:05 PM"}
