# backend/booking_engine/services/conflict_checker.py
"""
Conflict Checker Service for the booking engine

Detects overlaps between a candidate interval and the existing active
(pending or confirmed) bookings held by the same staff resource. Intervals
are half-open, so back-to-back bookings never conflict. A booking without
a resource is unconstrained and never conflicts with anything.

The check is a plain read: nothing is locked between the check and the
caller's subsequent write.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import MalformedBookingException, ValidationException
from ..domain.intervals import intervals_overlap
from ..models.booking import ACTIVE_STATUSES, Booking
from ..models.types import as_utc
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingFilter, BookingRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts.

    Centralizes overlap detection so intake, operator transitions and the
    auto-confirm job all apply the same rule.
    """

    def __init__(self, db: Session, repository: Optional[BookingRepository] = None):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional BookingRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        tenant_id: str,
        start_time: datetime,
        end_time: datetime,
        resource_id: Optional[str],
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Get the active bookings on the resource that overlap [start_time, end_time).

        Args:
            tenant_id: Owning tenant
            start_time: Candidate start (inclusive)
            end_time: Candidate end (exclusive)
            resource_id: Staff/resource; None means no conflicts are possible, whatever
                the interval
            exclude_booking_id: Booking being re-checked, ignored in the scan

        Returns:
            Overlapping bookings, oldest start first

        Raises:
            ValidationException: if start_time is not before end_time
        """
        if not resource_id:
            return []
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        if not start_time < end_time:
            raise ValidationException(
                "Booking start time must be before its end time", code="INVALID_INTERVAL"
            )

        candidates = self.repository.find_bookings(
            tenant_id,
            BookingFilter(
                statuses=ACTIVE_STATUSES,
                resource_id=resource_id,
                exclude_booking_id=exclude_booking_id,
            ),
        )

        conflicts = []
        for booking in candidates:
            try:
                other_start, other_end = booking.interval()
            except MalformedBookingException as exc:
                # A booking without bounds cannot occupy the resource
                self.logger.warning(
                    f"Ignoring malformed booking {booking.id} in conflict scan: {exc.message}"
                )
                continue
            if intervals_overlap(start_time, end_time, other_start, other_end):
                conflicts.append(booking)

        if conflicts:
            self.logger.info(
                f"Found {len(conflicts)} booking conflicts for resource {resource_id} "
                f"between {start_time.isoformat()}-{end_time.isoformat()}",
                extra={"tenant_id": tenant_id, "resource_id": resource_id},
            )
        return conflicts

    def has_conflict(
        self,
        tenant_id: str,
        start_time: datetime,
        end_time: datetime,
        resource_id: Optional[str],
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """
        Check if a candidate interval overlaps any active booking on the resource.

        Simplified boolean check for quick validation.
        """
        return bool(
            self.find_conflicts(tenant_id, start_time, end_time, resource_id, exclude_booking_id)
        )

    def describe_conflicts(self, conflicts: List[Booking]) -> List[Dict[str, Any]]:
        """Serializable summary of conflicting bookings for error details."""
        return [
            {
                "booking_id": booking.id,
                "start_time": booking.start_time.isoformat() if booking.start_time else None,
                "end_time": booking.end_time.isoformat() if booking.end_time else None,
                "customer_name": booking.customer_name,
                "service_name": booking.service_name,
                "status": booking.status,
            }
            for booking in conflicts
        ]
