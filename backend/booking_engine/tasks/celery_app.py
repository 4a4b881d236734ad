# backend/booking_engine/tasks/celery_app.py
"""
Celery wiring for the scheduled booking automations.

Redis carries both the broker queue and task results. The beat schedule is
derived from the automation registry, so adding a job there is enough to get
it scheduled.
"""

import logging
import os
from typing import Any, Dict, Type, cast

from celery import Celery, Task
from celery.signals import setup_logging

from ..core.config import settings

logger = logging.getLogger(__name__)

AUTOMATION_QUEUE = "automations"

WORKER_CONFIG: Dict[str, Any] = {
    "task_serializer": "json",
    "result_serializer": "json",
    "accept_content": ["json"],
    "enable_utc": True,
    "timezone": "UTC",
    "result_expires": 3600,
    # One long sweep per worker slot at a time
    "worker_prefetch_multiplier": 1,
    "worker_max_tasks_per_child": 1000,
    "task_acks_late": True,
    "task_reject_on_worker_lost": True,
    "task_soft_time_limit": 300,
    "task_time_limit": 600,
    "worker_hijack_root_logger": False,
    "beat_schedule_filename": "celerybeat-schedule",
    "broker_transport_options": {"visibility_timeout": 3600, "polling_interval": 10.0},
}


def _redis_url() -> str:
    url = os.getenv("CELERY_BROKER_URL") or os.getenv("REDIS_URL") or settings.redis_url
    tail = url.rsplit("/", 1)[-1]
    if tail.isdigit() and int(tail) < 16:
        return url
    return f"{url.rstrip('/')}/0"


def create_celery_app() -> Celery:
    """Build the worker/beat application with the automation schedule installed."""
    broker = _redis_url()
    app = Celery(
        "booking_engine",
        broker=broker,
        backend=os.getenv("CELERY_RESULT_BACKEND") or broker,
    )
    app.conf.update(WORKER_CONFIG)
    app.conf.imports = ("booking_engine.tasks.booking_automation",)
    app.conf.task_routes = {
        "booking_engine.tasks.booking_automation.*": {"queue": AUTOMATION_QUEUE},
    }

    from .beat_schedule import get_beat_schedule

    app.conf.beat_schedule = get_beat_schedule(settings.environment)

    from ..monitoring.sentry import init_sentry

    init_sentry()
    return app


@setup_logging.connect  # type: ignore[misc]
def configure_worker_logging(*args: Any, **kwargs: Any) -> None:
    # Replaces Celery's own handler setup
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


celery_app = create_celery_app()


class AutomationTask(Task):  # type: ignore[misc]
    """Default task class: logs every outcome with the task id attached."""

    def on_success(self, retval: Any, task_id: str, args: Any, kwargs: Any) -> None:
        logger.info(
            "%s finished",
            self.name,
            extra={"task_id": task_id, "task_name": self.name},
        )
        super().on_success(retval, task_id, args, kwargs)

    def on_failure(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logger.error(
            "%s raised %s: %s",
            self.name,
            type(exc).__name__,
            exc,
            exc_info=True,
            extra={"task_id": task_id, "task_name": self.name, "task_kwargs": repr(kwargs)},
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)


celery_app.Task = cast(Type[Task], AutomationTask)
