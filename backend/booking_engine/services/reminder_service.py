# backend/booking_engine/services/reminder_service.py
"""
Manual Reminder Service

Lets an operator send a booking's reminder immediately instead of waiting
for the scheduled sweep. Uses the same notifier, tenant settings and
reminder_sent flag as the automation, so the sweep will not send it again.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import BusinessRuleException, NotFoundException, ServiceException
from ..domain.lifecycle import coerce_status
from ..models.booking import BookingStatus
from ..repositories import RepositoryFactory
from .base import BaseService
from .booking_lifecycle import BookingLifecycleService
from .notification_service import BookingNotifier, NotificationOutcome, Notifier
from .tenant_settings import DatabaseTenantSettingsProvider, TenantSettingsProvider

logger = logging.getLogger(__name__)

# Reminders make no sense once the appointment is settled
_NO_REMINDER_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW}
)


class ManualReminderService(BaseService):
    def __init__(
        self,
        db: Session,
        notifier: Optional[Notifier] = None,
        settings_provider: Optional[TenantSettingsProvider] = None,
    ):
        super().__init__(db)
        self.notifier = notifier or BookingNotifier()
        self.settings_provider = settings_provider or DatabaseTenantSettingsProvider()
        self.tenant_repository = RepositoryFactory.create_tenant_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.lifecycle = BookingLifecycleService(db)

    @BaseService.measure_operation("send_reminder")
    def send_reminder(
        self, tenant_id: str, booking_id: str, actor: Optional[str] = None
    ) -> NotificationOutcome:
        """
        Send one booking's reminder now and mark it sent.

        Raises:
            NotFoundException: if the tenant or booking does not exist
            BusinessRuleException: if the booking is cancelled, completed or a no-show
            ServiceException: if no channel delivered the reminder
        """
        tenant = self.tenant_repository.get_by_id(tenant_id)
        if tenant is None:
            raise NotFoundException("Tenant not found", code="TENANT_NOT_FOUND")
        booking = self.booking_repository.get_for_tenant(tenant_id, booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")

        if coerce_status(booking.status) in _NO_REMINDER_STATUSES:
            raise BusinessRuleException(
                f"Cannot send reminder for {booking.status} bookings",
                code="REMINDER_NOT_ALLOWED",
                details={"status": booking.status},
            )
        booking.interval()

        outcome = self.notifier.send_reminder(booking, self.settings_provider.for_tenant(tenant))
        if outcome.errors and not outcome.delivered:
            raise ServiceException(
                "; ".join(outcome.errors), code="REMINDER_NOT_DELIVERED"
            )

        with self.transaction():
            self.lifecycle.mark_flag(booking, "reminder_sent", actor=actor or "operator")

        self.logger.info(
            f"Manual reminder sent for booking {booking_id}",
            extra={"booking_id": booking_id, "tenant_id": tenant_id},
        )
        return outcome
