"""
Static list of the automation jobs.

Built once at import and handed to the trigger side (Celery beat, the
manual API, Sentry cron monitors). There is no runtime registration; adding
a job means adding a descriptor here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Type

from .base import AutomationJob
from .confirmations import AutoConfirmJob, auto_confirm_bookings
from .no_show import NoShowJob, detect_no_shows
from .reminders import BookingReminderJob, send_booking_reminders
from .result import AutomationResult


@dataclass(frozen=True)
class JobDescriptor:
    name: str
    task_name: str
    # Five-field cron expression (UTC)
    cron: str
    entry: Callable[..., AutomationResult]
    job_class: Type[AutomationJob]
    # Run options accepted from the trigger besides tenant_id
    option_names: Tuple[str, ...] = ()


AUTOMATION_JOBS: Tuple[JobDescriptor, ...] = (
    JobDescriptor(
        name="booking-reminders",
        task_name="booking_engine.tasks.booking_automation.send_booking_reminders",
        cron="0 * * * *",
        entry=send_booking_reminders,
        job_class=BookingReminderJob,
        option_names=("hours_before",),
    ),
    JobDescriptor(
        name="auto-confirm-bookings",
        task_name="booking_engine.tasks.booking_automation.auto_confirm_bookings",
        cron="*/15 * * * *",
        entry=auto_confirm_bookings,
        job_class=AutoConfirmJob,
        option_names=("booking_id",),
    ),
    JobDescriptor(
        name="detect-no-shows",
        task_name="booking_engine.tasks.booking_automation.detect_no_shows",
        cron="*/30 * * * *",
        entry=detect_no_shows,
        job_class=NoShowJob,
        option_names=("grace_period_minutes",),
    ),
)

_BY_NAME: Dict[str, JobDescriptor] = {descriptor.name: descriptor for descriptor in AUTOMATION_JOBS}


def get_descriptor(name: str) -> Optional[JobDescriptor]:
    return _BY_NAME.get(name)
