# backend/booking_engine/tasks/beat_schedule.py
"""
Celery Beat schedule for the booking automations.

One entry per descriptor in booking_engine.automations.registry; the entry
key is the job name, which is also its Sentry cron monitor slug. Scheduled
runs pass no options, so tenant overrides and the configured defaults apply.
"""

import logging
from typing import Any, Dict

from celery.schedules import crontab

from ..automations.registry import AUTOMATION_JOBS, JobDescriptor

logger = logging.getLogger(__name__)

# Environment-specific overrides merged over the generated schedule
SCHEDULE_CONFIG: Dict[str, Dict[str, Dict[str, Any]]] = {
    "development": {
        # Reminders every 15 minutes locally so changes are visible quickly
        "booking-reminders": {"schedule": crontab(minute="*/15")},
    },
}


def parse_cron_expression(cron_expr: str) -> crontab:
    """Convert a five-field cron expression into a Celery crontab schedule."""
    parts = cron_expr.strip().split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron expression: {cron_expr!r}")
    minute, hour, day_of_month, month_of_year, day_of_week = parts
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


def _entry_for(descriptor: JobDescriptor) -> Dict[str, Any]:
    return {
        "task": descriptor.task_name,
        "schedule": parse_cron_expression(descriptor.cron),
        "kwargs": {},
        "options": {"queue": "automations", "priority": 5},
    }


def get_beat_schedule(environment: str = "production") -> Dict[str, Dict[str, Any]]:
    """
    Get the beat schedule for the specified environment.

    Args:
        environment: The environment name (production, development)

    Returns:
        Mapping of schedule entry name to Celery beat configuration dict
    """
    schedule = {descriptor.name: _entry_for(descriptor) for descriptor in AUTOMATION_JOBS}
    for name, override in SCHEDULE_CONFIG.get(environment, {}).items():
        if name in schedule:
            schedule[name] = {**schedule[name], **override}
    return schedule
