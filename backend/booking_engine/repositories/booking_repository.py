# backend/booking_engine/repositories/booking_repository.py
"""
Booking Repository for the booking engine

Data access for every automation job. All queries are tenant-scoped except
the platform-wide counters used by the status endpoint.

Status writes are compare-and-set on the current status: an UPDATE only
lands if the row is still in one of the expected statuses, so two jobs
racing on the same booking can never move it backwards.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException, ValidationException
from ..models.booking import Booking, BookingStatus
from ..models.types import utcnow
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

IDEMPOTENCY_FLAGS = ("reminder_sent", "confirmation_sent")

# Timestamp column stamped when a booking enters the status
_STATUS_TIMESTAMPS: Dict[str, str] = {
    BookingStatus.CONFIRMED.value: "confirmed_at",
    BookingStatus.COMPLETED.value: "completed_at",
    BookingStatus.CANCELLED.value: "cancelled_at",
    BookingStatus.NO_SHOW.value: "no_show_at",
}


def _status_values(statuses: Sequence[Any]) -> List[str]:
    return [s.value if isinstance(s, BookingStatus) else str(s) for s in statuses]


@dataclass(frozen=True)
class BookingFilter:
    """
    Criteria for booking queries. Unset fields do not constrain.

    start_from is inclusive, start_before exclusive and start_until inclusive.
    include_unscheduled also matches rows with no start time, so jobs can
    report them as malformed instead of silently never seeing them.
    """

    statuses: Optional[Sequence[str]] = None
    start_from: Optional[datetime] = None
    start_before: Optional[datetime] = None
    start_until: Optional[datetime] = None
    resource_id: Optional[str] = None
    reminder_sent: Optional[bool] = None
    confirmation_sent: Optional[bool] = None
    booking_id: Optional[str] = None
    exclude_booking_id: Optional[str] = None
    include_unscheduled: bool = False
    limit: Optional[int] = None


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking queries and guarded status updates."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    # Queries

    def _apply_filter(self, query: Query, criteria: BookingFilter) -> Query:
        if criteria.statuses is not None:
            query = query.filter(Booking.status.in_(_status_values(criteria.statuses)))
        window = []
        if criteria.start_from is not None:
            window.append(Booking.start_time >= criteria.start_from)
        if criteria.start_before is not None:
            window.append(Booking.start_time < criteria.start_before)
        if criteria.start_until is not None:
            window.append(Booking.start_time <= criteria.start_until)
        if window:
            in_window = and_(*window)
            if criteria.include_unscheduled:
                in_window = or_(in_window, Booking.start_time.is_(None))
            query = query.filter(in_window)
        if criteria.resource_id is not None:
            query = query.filter(Booking.resource_id == criteria.resource_id)
        if criteria.reminder_sent is not None:
            query = query.filter(Booking.reminder_sent.is_(criteria.reminder_sent))
        if criteria.confirmation_sent is not None:
            query = query.filter(Booking.confirmation_sent.is_(criteria.confirmation_sent))
        if criteria.booking_id is not None:
            query = query.filter(Booking.id == criteria.booking_id)
        if criteria.exclude_booking_id is not None:
            query = query.filter(Booking.id != criteria.exclude_booking_id)
        return query

    def find_bookings(self, tenant_id: str, criteria: BookingFilter) -> List[Booking]:
        """
        Get a tenant's bookings matching the filter, oldest start first.

        Args:
            tenant_id: Owning tenant
            criteria: Filter to apply

        Returns:
            Bookings ordered by (start_time, created_at, id)
        """
        try:
            query = self._apply_filter(
                self.db.query(Booking).filter(Booking.tenant_id == tenant_id), criteria
            )
            query = query.order_by(Booking.start_time, Booking.created_at, Booking.id)
            if criteria.limit is not None:
                query = query.limit(criteria.limit)
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding bookings for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to find bookings: {str(e)}")

    def get_for_tenant(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        try:
            return (
                self.db.query(Booking)
                .filter(Booking.tenant_id == tenant_id, Booking.id == booking_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve booking: {str(e)}")

    def count_bookings(self, criteria: BookingFilter, tenant_id: Optional[str] = None) -> int:
        """Count bookings matching the filter, optionally across all tenants."""
        try:
            query = self.db.query(Booking)
            if tenant_id is not None:
                query = query.filter(Booking.tenant_id == tenant_id)
            return self._apply_filter(query, criteria).count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}")

    # Writes

    def update_booking_status(
        self,
        booking_id: str,
        status: Optional[str] = None,
        flags: Optional[Mapping[str, bool]] = None,
        expected_statuses: Optional[Sequence[str]] = None,
    ) -> bool:
        """
        Apply a status and/or idempotency flags to one booking.

        Flags can only be raised, never cleared. When expected_statuses is
        given the write only lands if the booking is still in one of them.

        Args:
            booking_id: Booking to update
            status: New status, or None to leave it
            flags: Idempotency flags to set true
            expected_statuses: Guard on the current status

        Returns:
            True if the row was updated, False if the guard did not match

        Raises:
            ValidationException: if a flag is unknown or being cleared
            RepositoryException: if the write fails
        """
        values: Dict[str, Any] = {}
        for flag, value in (flags or {}).items():
            if flag not in IDEMPOTENCY_FLAGS:
                raise ValidationException(f"Unknown idempotency flag: {flag}")
            if value is not True:
                raise ValidationException(f"Idempotency flag {flag} cannot be cleared")
            values[flag] = True

        now = utcnow()
        if status is not None:
            status_value = BookingStatus(status).value
            values["status"] = status_value
            stamp = _STATUS_TIMESTAMPS.get(status_value)
            if stamp:
                values[stamp] = now

        if not values:
            return False
        values["updated_at"] = now

        try:
            query = self.db.query(Booking).filter(Booking.id == booking_id)
            if expected_statuses is not None:
                query = query.filter(Booking.status.in_(_status_values(expected_statuses)))
            updated = query.update(values, synchronize_session="fetch")
            self.db.flush()
            return updated == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating booking {booking_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to update booking {booking_id}: {str(e)}")
