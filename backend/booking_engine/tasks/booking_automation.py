"""
Celery tasks that trigger the booking automations.

Each task is one full tenant sweep and returns the AutomationResult as a
dict. The runner never raises for tenant or booking failures, so these tasks
do not retry; the next scheduled run picks up anything left unprocessed.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, TypeVar, cast

from ..automations import registry
from ..monitoring.sentry_crons import monitor_if_configured
from .celery_app import celery_app

logger = logging.getLogger(__name__)

TaskCallable = TypeVar("TaskCallable", bound=Callable[..., Any])


def typed_task(*task_args: Any, **task_kwargs: Any) -> Callable[[TaskCallable], TaskCallable]:
    """Return a typed Celery task decorator for mypy."""
    return cast(Callable[[TaskCallable], TaskCallable], celery_app.task(*task_args, **task_kwargs))


def run_job(job_name: str, **options: Any) -> Dict[str, Any]:
    """Run a registered job through its entry function and return the result payload."""
    descriptor = registry.get_descriptor(job_name)
    if descriptor is None:
        raise LookupError(f"Unknown automation job: {job_name}")
    return descriptor.entry(**options).to_dict()


@typed_task(name="booking_engine.tasks.booking_automation.send_booking_reminders")
@monitor_if_configured("booking-reminders")
def send_booking_reminders(
    tenant_id: Optional[str] = None, hours_before: Optional[int] = None
) -> Dict[str, Any]:
    """Send reminders for bookings entering the reminder window."""
    return run_job("booking-reminders", tenant_id=tenant_id, hours_before=hours_before)


@typed_task(name="booking_engine.tasks.booking_automation.auto_confirm_bookings")
@monitor_if_configured("auto-confirm-bookings")
def auto_confirm_bookings(
    tenant_id: Optional[str] = None, booking_id: Optional[str] = None
) -> Dict[str, Any]:
    """Confirm pending bookings that do not conflict with another booking."""
    return run_job("auto-confirm-bookings", tenant_id=tenant_id, booking_id=booking_id)


@typed_task(name="booking_engine.tasks.booking_automation.detect_no_shows")
@monitor_if_configured("detect-no-shows")
def detect_no_shows(
    tenant_id: Optional[str] = None, grace_period_minutes: Optional[int] = None
) -> Dict[str, Any]:
    """Mark bookings whose grace period has passed as no-shows."""
    return run_job(
        "detect-no-shows", tenant_id=tenant_id, grace_period_minutes=grace_period_minutes
    )
