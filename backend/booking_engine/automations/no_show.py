"""
No-show detection.

Marks pending or confirmed bookings as no-show once start + grace <= now,
then sends a best-effort "missed appointment" follow-up when the tenant has
notifications enabled. The status change is committed before the follow-up
goes out, and the status itself keeps the booking from being selected again.
"""

from datetime import timedelta
from typing import List, Optional

from ..core.exceptions import MalformedBookingException
from ..domain.lifecycle import is_no_show_due
from ..models.booking import ACTIVE_STATUSES, Booking, BookingStatus
from ..repositories.booking_repository import BookingFilter
from .base import AutomationJob, ItemStatus, TenantContext
from .result import AutomationResult
from .runner import TenantBatchRunner


class NoShowJob(AutomationJob):
    name = "detect-no-shows"
    summary_template = "Detected {processed} no-shows"
    error_verb = "detecting no-shows"

    def _grace(self, ctx: TenantContext) -> int:
        return ctx.settings.grace_minutes(ctx.option("grace_period_minutes"))

    def select_bookings(self, ctx: TenantContext) -> List[Booking]:
        return ctx.bookings.find_bookings(
            ctx.tenant.id,
            BookingFilter(
                statuses=ACTIVE_STATUSES,
                start_until=ctx.now - timedelta(minutes=self._grace(ctx)),
                include_unscheduled=True,
            ),
        )

    def process_booking(
        self, ctx: TenantContext, booking: Booking, result: AutomationResult
    ) -> ItemStatus:
        grace = self._grace(ctx)
        if booking.start_time is None:
            raise MalformedBookingException(str(booking.id), "Booking has no start time")
        if not is_no_show_due(booking.start_time, grace, ctx.now):
            return ItemStatus.SKIPPED

        applied = ctx.lifecycle.apply_transition(
            booking,
            BookingStatus.NO_SHOW,
            actor=self.actor,
            reason=f"not attended within {grace} minutes of start",
        )
        if not applied:
            return ItemStatus.SKIPPED
        ctx.db.commit()

        if ctx.settings.notifications_enabled:
            # The no-show is already committed; a follow-up problem must not fail it
            self.send_guarded(
                result,
                booking,
                "Follow-up",
                lambda: self.notifier.send_follow_up(booking, ctx.settings),
            )
        return ItemStatus.PROCESSED


def detect_no_shows(
    tenant_id: Optional[str] = None,
    grace_period_minutes: Optional[int] = None,
    *,
    job: Optional[NoShowJob] = None,
    runner: Optional[TenantBatchRunner] = None,
) -> AutomationResult:
    """Mark overdue bookings as no-shows for all active tenants, or just tenant_id."""
    job = job or NoShowJob()
    runner = runner or TenantBatchRunner()
    return runner.run(job, tenant_id=tenant_id, grace_period_minutes=grace_period_minutes)
