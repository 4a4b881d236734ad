"""
Per-tenant job contract used by the TenantBatchRunner.

A job selects candidate bookings for one tenant and handles them one at a
time. Each booking is its own unit of work: it is committed on success and
rolled back on failure, and a failure is recorded against that booking only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
import logging
from typing import Any, Callable, ClassVar, List, Mapping, Optional

from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy.orm import Session

from ..core.exceptions import DomainException
from ..models.booking import Booking
from ..models.tenant import Tenant
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..services.booking_lifecycle import BookingLifecycleService
from ..services.notification_service import BookingNotifier, NotificationOutcome, Notifier
from ..services.tenant_settings import (
    DatabaseTenantSettingsProvider,
    TenantSettings,
    TenantSettingsProvider,
)
from .result import AutomationResult

logger = logging.getLogger(__name__)


class ItemStatus(StrEnum):
    PROCESSED = "processed"
    SKIPPED = "skipped"


@dataclass
class TenantContext:
    """Everything a job needs while sweeping one tenant."""

    db: Session
    tenant: Tenant
    settings: TenantSettings
    now: datetime
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.bookings: BookingRepository = RepositoryFactory.create_booking_repository(self.db)
        self.lifecycle = BookingLifecycleService(self.db)

    def option(self, key: str) -> Any:
        return self.options.get(key)


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, DomainException):
        return exc.message
    return str(exc) or type(exc).__name__


class AutomationJob(ABC):
    """Base class for booking automations."""

    name: ClassVar[str]
    # "{processed}" is filled in; ", N failed" is appended when needed
    summary_template: ClassVar[str]
    error_verb: ClassVar[str]

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        settings_provider: Optional[TenantSettingsProvider] = None,
    ):
        self._notifier = notifier
        self.settings_provider = settings_provider or DatabaseTenantSettingsProvider()
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def notifier(self) -> Notifier:
        # Transports are built on first use so jobs that never notify need no credentials
        if self._notifier is None:
            self._notifier = BookingNotifier()
        return self._notifier

    @property
    def actor(self) -> str:
        return f"automation:{self.name}"

    def skip_reason(self, ctx: TenantContext) -> Optional[str]:
        """Reason to leave the whole tenant alone this run, or None."""
        return None

    @abstractmethod
    def select_bookings(self, ctx: TenantContext) -> List[Booking]:
        """Candidate bookings for one tenant."""

    @abstractmethod
    def process_booking(
        self, ctx: TenantContext, booking: Booking, result: AutomationResult
    ) -> ItemStatus:
        """Handle one booking; raise to fail just this item."""

    def process_tenant(self, ctx: TenantContext, result: AutomationResult) -> None:
        reason = self.skip_reason(ctx)
        if reason:
            self.logger.debug(
                f"Skipping tenant {ctx.tenant.name}: {reason}", extra={"tenant_id": ctx.tenant.id}
            )
            return

        for booking in self.select_bookings(ctx):
            booking_id = booking.id
            try:
                status = self.process_booking(ctx, booking, result)
                ctx.db.commit()
            except SoftTimeLimitExceeded:
                # Ends the tenant, not just this booking
                ctx.db.rollback()
                raise
            except Exception as exc:
                ctx.db.rollback()
                message = describe_error(exc)
                self.logger.error(
                    f"{self.name} failed for booking {booking_id}: {message}",
                    extra={"booking_id": booking_id, "tenant_id": ctx.tenant.id},
                )
                result.record_item_error(booking_id, message)
                continue

            if status is ItemStatus.PROCESSED:
                result.record_success()
            else:
                result.record_skip()

    def send_guarded(
        self,
        result: AutomationResult,
        booking: Booking,
        label: str,
        send: Callable[[], NotificationOutcome],
    ) -> Optional[NotificationOutcome]:
        """
        Run a notifier call whose failure must not fail the booking.

        A raised error becomes a "<label> failed: ..." notice and None is
        returned; channel errors from the outcome are kept as notices too.
        """
        try:
            outcome = send()
        except SoftTimeLimitExceeded:
            raise
        except Exception as exc:
            self.logger.warning(
                f"{label} for booking {booking.id} raised: {describe_error(exc)}",
                extra={"booking_id": booking.id, "tenant_id": booking.tenant_id},
            )
            result.record_notice(booking.id, f"{label} failed: {describe_error(exc)}")
            return None
        self.record_notification_errors(result, booking.id, outcome.errors)
        return outcome

    def record_notification_errors(
        self, result: AutomationResult, booking_id: str, errors: List[str]
    ) -> None:
        for error in errors:
            result.record_notice(booking_id, error)

    def summarize(self, result: AutomationResult) -> str:
        message = self.summary_template.format(processed=result.processed)
        if result.failed:
            message += f", {result.failed} failed"
        return message
