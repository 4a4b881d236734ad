# backend/booking_engine/main.py
"""FastAPI application exposing the manual automation triggers."""

import logging

from fastapi import FastAPI

from . import __version__
from .core.config import settings
from .monitoring.sentry import init_sentry
from .routes import automations, metrics

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    init_sentry()

    app = FastAPI(title="Booking Engine", version=__version__)
    app.include_router(automations.router)
    app.include_router(metrics.router)

    @app.get("/health", include_in_schema=False)
    def health() -> dict:
        return {"status": "healthy", "environment": settings.environment}

    return app


app = create_app()
