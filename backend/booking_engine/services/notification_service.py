# backend/booking_engine/services/notification_service.py
"""
Customer notifications for booking lifecycle events.

BookingNotifier renders a notification once and dispatches it on every
channel the tenant enables and the customer has contact details for. It
never raises for delivery problems. Transport and template failures come back
as errors on the NotificationOutcome, and so does an SMS transport that is
switched off, so the calling job can record them without blocking the
lifecycle change.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional, Protocol

from ..core.exceptions import DomainException, MalformedBookingException
from ..core.timezone_utils import format_booking_time
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from .email import EmailTransport, build_email_service
from .notification_templates import NotificationKind, RenderedNotification, render_notification
from .sms_service import SMSService, SMSStatus
from .tenant_settings import TenantSettings

logger = logging.getLogger(__name__)

SMS_DISABLED_ERROR = "SMS delivery disabled"


@dataclass
class NotificationOutcome:
    """Which channels delivered, plus any delivery errors."""

    email: bool = False
    sms: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def delivered(self) -> bool:
        return self.email or self.sms

    @property
    def ok(self) -> bool:
        return not self.errors


class Notifier(Protocol):
    """Notification collaborator used by the automation jobs."""

    def send_reminder(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        ...

    def send_confirmation(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        ...

    def send_follow_up(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        ...


def build_template_context(booking: Booking, tenant: TenantSettings) -> Dict[str, Any]:
    """
    Variables available to notification templates.

    Raises:
        MalformedBookingException: if the booking has no start time
    """
    if booking.start_time is None:
        raise MalformedBookingException(str(booking.id), "Booking has no start time")
    formatted = format_booking_time(booking.start_time, tenant.timezone)
    return {
        "customer_name": booking.customer_name or "",
        "service_name": booking.service_name or "",
        "date": formatted["date"],
        "time": formatted["time"],
        "staff_name": booking.staff_name or "",
        "notes": booking.notes or "",
        "company_name": tenant.display_name,
        "contact_email": tenant.contact_email or "",
        "contact_phone": tenant.contact_phone or "",
    }


class BookingNotifier:
    """Dispatches reminder, confirmation and no-show follow-up messages."""

    def __init__(
        self,
        email_service: Optional[EmailTransport] = None,
        sms_service: Optional[SMSService] = None,
    ):
        self.email_service = email_service or build_email_service()
        self.sms_service = sms_service or SMSService()
        self.logger = logging.getLogger(self.__class__.__name__)

    def send_reminder(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        return self._dispatch(NotificationKind.REMINDER, booking, tenant)

    def send_confirmation(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        return self._dispatch(NotificationKind.CONFIRMATION, booking, tenant)

    def send_follow_up(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        return self._dispatch(NotificationKind.NO_SHOW, booking, tenant)

    def _dispatch(
        self, kind: NotificationKind, booking: Booking, tenant: TenantSettings
    ) -> NotificationOutcome:
        outcome = NotificationOutcome()
        use_email = bool(tenant.email_notifications and booking.customer_email)
        use_sms = bool(tenant.sms_notifications and booking.customer_phone)
        if not (use_email or use_sms):
            self.logger.debug(
                f"No enabled channel with contact details for booking {booking.id}; skipping {kind}"
            )
            return outcome

        try:
            rendered = render_notification(
                kind,
                build_template_context(booking, tenant),
                email_override=tenant.template_override("email", kind.value),
                sms_override=tenant.template_override("sms", kind.value),
            )
        except DomainException as exc:
            outcome.errors.append(exc.message)
            return outcome

        if use_email:
            outcome.email = self._send_email(kind, booking, tenant, rendered, outcome)
        if use_sms:
            outcome.sms = self._send_sms(kind, booking, rendered, outcome)
        return outcome

    def _send_email(
        self,
        kind: NotificationKind,
        booking: Booking,
        tenant: TenantSettings,
        rendered: RenderedNotification,
        outcome: NotificationOutcome,
    ) -> bool:
        try:
            self.email_service.send_email(
                booking.customer_email,
                rendered.subject,
                rendered.email_body,
                from_name=tenant.display_name,
                reply_to=tenant.contact_email,
            )
        except Exception as exc:
            message = exc.message if isinstance(exc, DomainException) else str(exc)
            self.logger.error(
                f"Email {kind} failed for booking {booking.id}: {message}",
                extra={"booking_id": booking.id, "tenant_id": booking.tenant_id},
            )
            outcome.errors.append(f"Email failed: {message}")
            prometheus_metrics.record_notification(kind.value, "email", "error")
            return False
        prometheus_metrics.record_notification(kind.value, "email", "sent")
        return True

    def _send_sms(
        self,
        kind: NotificationKind,
        booking: Booking,
        rendered: RenderedNotification,
        outcome: NotificationOutcome,
    ) -> bool:
        try:
            _, status = self.sms_service.send_sms(booking.customer_phone, rendered.sms_body)
        except Exception as exc:
            message = exc.message if isinstance(exc, DomainException) else str(exc)
            self.logger.error(
                f"SMS {kind} failed for booking {booking.id}: {message}",
                extra={"booking_id": booking.id, "tenant_id": booking.tenant_id},
            )
            outcome.errors.append(f"SMS failed: {message}")
            prometheus_metrics.record_notification(kind.value, "sms", "error")
            return False
        prometheus_metrics.record_notification(kind.value, "sms", status.value)
        if status is SMSStatus.DISABLED:
            # The tenant wants SMS but this deployment cannot send it
            self.logger.warning(
                f"SMS {kind} for booking {booking.id} not sent: delivery disabled",
                extra={"booking_id": booking.id, "tenant_id": booking.tenant_id},
            )
            outcome.errors.append(SMS_DISABLED_ERROR)
            return False
        return True
