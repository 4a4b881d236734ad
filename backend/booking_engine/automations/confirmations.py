"""
Booking auto-confirmation.

Confirms pending bookings whose confirmation has not been sent, provided the
booking does not overlap any other pending or confirmed booking on the same
resource. Conflicting bookings stay pending for an operator and are counted
as skipped, not failed.

The confirmation is sent first; confirmation_sent and the status change are
then written together as the last step. A send that fails or raises is kept
as a notice and does not hold the booking back.
"""

from typing import List, Optional

from ..models.booking import Booking, BookingStatus
from ..repositories.booking_repository import BookingFilter
from .base import AutomationJob, ItemStatus, TenantContext
from .result import AutomationResult
from .runner import TenantBatchRunner


class AutoConfirmJob(AutomationJob):
    name = "auto-confirm-bookings"
    summary_template = "Auto-confirmed {processed} bookings"
    error_verb = "auto-confirming bookings"

    def skip_reason(self, ctx: TenantContext) -> Optional[str]:
        if not ctx.settings.auto_confirm_bookings:
            return "auto-confirmation disabled"
        return None

    def select_bookings(self, ctx: TenantContext) -> List[Booking]:
        return ctx.bookings.find_bookings(
            ctx.tenant.id,
            BookingFilter(
                statuses=[BookingStatus.PENDING.value],
                confirmation_sent=False,
                booking_id=ctx.option("booking_id"),
            ),
        )

    def process_booking(
        self, ctx: TenantContext, booking: Booking, result: AutomationResult
    ) -> ItemStatus:
        start, end = booking.interval()
        if ctx.lifecycle.conflict_checker.has_conflict(
            ctx.tenant.id, start, end, booking.resource_id, exclude_booking_id=booking.id
        ):
            self.logger.info(
                f"Booking {booking.id} overlaps another booking on {booking.resource_id}; "
                "leaving it pending",
                extra={"booking_id": booking.id, "tenant_id": ctx.tenant.id},
            )
            return ItemStatus.SKIPPED

        # The booking is confirmed even when the message cannot go out
        self.send_guarded(
            result,
            booking,
            "Confirmation",
            lambda: self.notifier.send_confirmation(booking, ctx.settings),
        )

        applied = ctx.lifecycle.apply_transition(
            booking,
            BookingStatus.CONFIRMED,
            flags={"confirmation_sent": True},
            actor=self.actor,
            reason="auto-confirmed",
        )
        return ItemStatus.PROCESSED if applied else ItemStatus.SKIPPED


def auto_confirm_bookings(
    tenant_id: Optional[str] = None,
    booking_id: Optional[str] = None,
    *,
    job: Optional[AutoConfirmJob] = None,
    runner: Optional[TenantBatchRunner] = None,
) -> AutomationResult:
    """Auto-confirm eligible bookings for all active tenants, or just tenant_id/booking_id."""
    job = job or AutoConfirmJob()
    runner = runner or TenantBatchRunner()
    return runner.run(job, tenant_id=tenant_id, booking_id=booking_id)
