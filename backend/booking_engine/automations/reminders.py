"""
Booking reminders.

Sends a reminder for each active booking starting inside
[now + hours_before, now + hours_before + window) whose reminder has not
gone out yet, then sets reminder_sent. Tenants with both notification
channels disabled are skipped.
"""

from typing import List, Optional

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..domain.intervals import reminder_window
from ..models.booking import ACTIVE_STATUSES, Booking
from ..repositories.booking_repository import BookingFilter
from .base import AutomationJob, ItemStatus, TenantContext
from .result import AutomationResult
from .runner import TenantBatchRunner


class BookingReminderJob(AutomationJob):
    name = "booking-reminders"
    summary_template = "Processed {processed} booking reminders"
    error_verb = "sending booking reminders"

    def skip_reason(self, ctx: TenantContext) -> Optional[str]:
        if not ctx.settings.notifications_enabled:
            return "notifications disabled"
        return None

    def select_bookings(self, ctx: TenantContext) -> List[Booking]:
        window = reminder_window(
            ctx.now,
            ctx.settings.reminder_hours(ctx.option("hours_before")),
            ctx.option("window_minutes") or settings.reminder_window_minutes,
        )
        return ctx.bookings.find_bookings(
            ctx.tenant.id,
            BookingFilter(
                statuses=ACTIVE_STATUSES,
                start_from=window.start,
                start_before=window.end,
                reminder_sent=False,
                include_unscheduled=True,
            ),
        )

    def process_booking(
        self, ctx: TenantContext, booking: Booking, result: AutomationResult
    ) -> ItemStatus:
        booking.interval()

        outcome = self.notifier.send_reminder(booking, ctx.settings)
        if outcome.errors and not outcome.delivered:
            # Nothing reached the customer; leave the flag clear so the next run retries
            raise ServiceException("; ".join(outcome.errors), code="REMINDER_NOT_DELIVERED")
        self.record_notification_errors(result, booking.id, outcome.errors)

        ctx.lifecycle.mark_flag(booking, "reminder_sent", actor=self.actor)
        return ItemStatus.PROCESSED


def send_booking_reminders(
    tenant_id: Optional[str] = None,
    hours_before: Optional[int] = None,
    *,
    job: Optional[BookingReminderJob] = None,
    runner: Optional[TenantBatchRunner] = None,
) -> AutomationResult:
    """Send reminders for all active tenants, or just tenant_id."""
    job = job or BookingReminderJob()
    runner = runner or TenantBatchRunner()
    return runner.run(job, tenant_id=tenant_id, hours_before=hours_before)
