"""Snapshot of pending automation work across all active tenants."""

from datetime import datetime, timedelta
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.booking import ACTIVE_STATUSES, BookingStatus
from ..models.types import utcnow
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingFilter
from .base import BaseService

logger = logging.getLogger(__name__)

STATUS_LOOKAHEAD_HOURS = 24


class AutomationStatusService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.tenant_repository = RepositoryFactory.create_tenant_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("get_status")
    def get_status(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Count the work each automation would currently find.

        Uses the platform defaults; tenant overrides are not applied here.
        """
        now = now or utcnow()
        repo = self.booking_repository
        return {
            "active_tenants": len(self.tenant_repository.find_active_tenants()),
            "reminders_due_24h": repo.count_bookings(
                BookingFilter(
                    statuses=ACTIVE_STATUSES,
                    start_from=now,
                    start_before=now + timedelta(hours=STATUS_LOOKAHEAD_HOURS),
                    reminder_sent=False,
                )
            ),
            "pending_auto_confirm": repo.count_bookings(
                BookingFilter(statuses=[BookingStatus.PENDING.value], confirmation_sent=False)
            ),
            "no_show_candidates": repo.count_bookings(
                BookingFilter(
                    statuses=ACTIVE_STATUSES,
                    start_until=now - timedelta(minutes=settings.no_show_grace_minutes),
                )
            ),
        }
