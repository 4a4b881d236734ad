# backend/booking_engine/services/email.py
"""
Email transports for booking notifications.

EmailService sends through the Resend API; ConsoleEmailService logs the
message instead and is the default outside production. Use
build_email_service() to get the one selected by settings.email_provider.
"""

import html
import logging
from typing import Any, Dict, Optional, Union

import resend

from ..core.config import settings
from ..core.exceptions import NotificationDeliveryException, ServiceException

logger = logging.getLogger(__name__)


def _text_to_html(text_content: str) -> str:
    paragraphs = [p for p in text_content.split("\n\n") if p.strip()]
    return "".join(f"<p>{html.escape(p).replace(chr(10), '<br>')}</p>" for p in paragraphs)


class EmailService:
    """Resend transport used in production."""

    def __init__(self, from_email: Optional[str] = None):
        api_key = settings.resend_api_key.get_secret_value() if settings.resend_api_key else ""
        if not api_key:
            raise ServiceException("Resend API key not configured")

        resend.api_key = api_key
        self.from_email = from_email or settings.from_email
        self.logger = logging.getLogger(self.__class__.__name__)

    def send_email(
        self,
        to_email: str,
        subject: str,
        text_content: str,
        from_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send text_content as the plain part plus a generated HTML part.

        from_name replaces the display name of the configured sender, so mail
        appears to come from the tenant's business; reply_to sends answers to the
        tenant's own inbox. Returns the Resend response and raises
        NotificationDeliveryException when Resend refuses the message.
        """
        sender = self.from_email
        if from_name and "<" in sender:
            sender = f"{from_name} <{sender.split('<', 1)[1].rstrip('>')}>"

        email_data = {
            "from": sender,
            "to": to_email,
            "subject": subject,
            "html": _text_to_html(text_content),
            "text": text_content,
        }
        if reply_to:
            email_data["reply_to"] = reply_to
        try:
            response = resend.Emails.send(email_data)
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            self.logger.error("Resend rejected email to %s: %s", to_email, error_msg)
            raise NotificationDeliveryException("email", error_msg) from e

        self.logger.info("Email '%s' handed to Resend for %s", subject, to_email)
        return dict(response) if response else {}


class ConsoleEmailService:
    """Logs emails instead of sending them; used for local runs and tests."""

    def __init__(self, from_email: Optional[str] = None):
        self.from_email = from_email or settings.from_email

    def send_email(
        self,
        to_email: str,
        subject: str,
        text_content: str,
        from_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        logger.info(
            "Console email to %s - Subject: %s\n%s",
            to_email,
            subject,
            text_content,
            extra={"from_name": from_name, "reply_to": reply_to},
        )
        return {"id": None, "to": to_email, "provider": "console"}


EmailTransport = Union[EmailService, ConsoleEmailService]


def build_email_service() -> EmailTransport:
    if settings.email_provider == "resend":
        return EmailService()
    return ConsoleEmailService()
