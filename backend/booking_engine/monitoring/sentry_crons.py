"""
Sentry cron monitors for the automation jobs.

Each job in AUTOMATION_JOBS gets a monitor whose slug is the job name and
whose crontab is the job's production cron, so a missed or failed beat run
raises a Sentry issue.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

from sentry_sdk.crons import monitor

from ..automations.registry import AUTOMATION_JOBS, JobDescriptor
from ..core.config import settings

F = TypeVar("F", bound=Callable[..., Any])

CHECKIN_MARGIN_MINUTES = 5
MAX_RUNTIME_MINUTES = 15


def _monitor_config(job: JobDescriptor) -> dict[str, Any]:
    return {
        "schedule": {"type": "crontab", "value": job.cron},
        "timezone": "UTC",
        "checkin_margin": CHECKIN_MARGIN_MINUTES,
        "max_runtime": MAX_RUNTIME_MINUTES,
        "failure_issue_threshold": 2,
        "recovery_threshold": 1,
    }


AUTOMATION_MONITOR_CONFIGS: dict[str, dict[str, Any]] = {
    job.name: _monitor_config(job) for job in AUTOMATION_JOBS
}

# Regexes handed to CeleryIntegration so beat does not double-report these jobs
AUTOMATION_MONITOR_EXCLUDES: tuple[str, ...] = tuple(
    f"^{name}$" for name in AUTOMATION_MONITOR_CONFIGS
)


def _unchanged(func: F) -> F:
    return func


def monitor_if_configured(slug: str) -> Callable[[F], F]:
    """Cron check-ins for slug when Sentry is on; otherwise the task is returned as is."""
    config = AUTOMATION_MONITOR_CONFIGS.get(slug)
    if config is None or not settings.sentry_enabled:
        return _unchanged
    return cast(Callable[[F], F], monitor(monitor_slug=slug, monitor_config=config))
