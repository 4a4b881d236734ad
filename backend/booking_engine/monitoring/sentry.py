"""Sentry setup shared by the API process and the Celery worker/beat."""

import logging
import os
from typing import Any, Mapping, Optional

import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from .. import __version__
from ..core.config import settings
from .sentry_crons import AUTOMATION_MONITOR_EXCLUDES

logger = logging.getLogger(__name__)

TRACES_SAMPLE_RATE = 0.1
# Scraped or polled constantly; tracing them only adds noise
UNTRACED_PATHS = ("/health", "/metrics/prometheus")


def _request_path(sampling_context: Mapping[str, Any]) -> Optional[str]:
    scope = sampling_context.get("asgi_scope")
    if isinstance(scope, Mapping) and isinstance(scope.get("path"), str):
        return scope["path"]
    return None


def traces_sampler(sampling_context: Mapping[str, Any]) -> float:
    path = _request_path(sampling_context)
    if path is not None and path.rstrip("/") in UNTRACED_PATHS:
        return 0.0
    return TRACES_SAMPLE_RATE


def init_sentry() -> bool:
    """Start the SDK when SENTRY_DSN is set. Returns whether it was started."""
    dsn = (settings.sentry_dsn or "").strip()
    if not dsn:
        logger.debug("Sentry disabled: SENTRY_DSN not set")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=settings.environment,
        release=os.getenv("GIT_SHA") or f"booking-engine@{__version__}",
        integrations=[
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            FastApiIntegration(transaction_style="endpoint"),
            CeleryIntegration(
                monitor_beat_tasks=True,
                exclude_beat_tasks=list(AUTOMATION_MONITOR_EXCLUDES),
            ),
        ],
        # Bookings carry customer contact details
        send_default_pii=False,
        traces_sampler=traces_sampler,
    )
    logger.info("Sentry initialized for %s", settings.environment)
    return True
