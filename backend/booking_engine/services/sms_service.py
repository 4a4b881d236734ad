"""Twilio transport for customer text messages."""

from __future__ import annotations

from enum import StrEnum
import logging
from typing import Any, Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from ..core.config import settings
from ..core.constants import MAX_SMS_LENGTH
from ..core.exceptions import NotificationDeliveryException

logger = logging.getLogger(__name__)

SMSResponse = Optional[dict[str, Any]]


class SMSStatus(StrEnum):
    SUCCESS = "success"
    DISABLED = "disabled"


def _configured_client() -> Optional[Client]:
    """A Twilio client when SMS is switched on and fully configured, else None."""
    if not settings.sms_enabled:
        return None
    token = settings.twilio_auth_token.get_secret_value() if settings.twilio_auth_token else ""
    if not (settings.twilio_account_sid and token and settings.twilio_phone_number):
        logger.warning("SMS_ENABLED is set but Twilio credentials are incomplete")
        return None
    return Client(settings.twilio_account_sid, token)


def _fit(body: str) -> str:
    if len(body) <= MAX_SMS_LENGTH:
        return body
    return body[: MAX_SMS_LENGTH - 3] + "..."


def _tail(number: str) -> str:
    # Only the last digits reach the logs
    return number[-4:]


class SMSService:
    """
    Sends through Twilio, or reports DISABLED without sending when no client
    is available. An injected client always enables sending.
    """

    def __init__(self, client: Optional[Client] = None) -> None:
        self.client = client if client is not None else _configured_client()
        self.from_number = settings.twilio_phone_number
        if self.client is None:
            logger.info("SMS delivery disabled")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def send_sms(self, to_number: str, message: str) -> tuple[SMSResponse, SMSStatus]:
        """
        Args:
            to_number: E.164 recipient, e.g. +15555550100
            message: Body, cut to MAX_SMS_LENGTH with a trailing ellipsis

        Raises:
            NotificationDeliveryException: bad number format or a Twilio rejection
        """
        if self.client is None:
            logger.debug("Skipping SMS to %s, delivery disabled", _tail(to_number))
            return None, SMSStatus.DISABLED

        if not to_number.startswith("+"):
            raise NotificationDeliveryException("sms", f"Invalid phone number format: {to_number}")

        try:
            sent = self.client.messages.create(
                to=to_number, from_=self.from_number, body=_fit(message)
            )
        except TwilioRestException as exc:
            logger.error("Twilio rejected SMS to %s: %s", _tail(to_number), exc)
            raise NotificationDeliveryException("sms", str(exc.msg or exc)) from exc

        logger.info("SMS to %s accepted as %s", _tail(to_number), sent.sid)
        return {"sid": sent.sid, "status": getattr(sent, "status", None), "to": to_number}, (
            SMSStatus.SUCCESS
        )
