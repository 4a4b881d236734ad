"""Celery tasks for the booking engine."""

from .celery_app import celery_app

__all__ = ["celery_app"]
