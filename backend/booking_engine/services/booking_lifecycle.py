# backend/booking_engine/services/booking_lifecycle.py
"""
Booking Lifecycle Service for the booking engine

Single place where booking status and idempotency flags change. Operator
actions go through transition(); automation jobs use apply_transition() and
mark_flag() inside their own per-item unit of work. Every write that lands
is recorded on the audit trail.

Writes are compare-and-set on the status the caller observed, so a booking
that another job already moved is left alone and reported as not applied.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BookingConflictException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from ..domain.lifecycle import coerce_status, ensure_transition
from ..models.booking import Booking, BookingStatus
from ..models.types import as_utc
from ..repositories import RepositoryFactory
from ..schemas.audit import FlagSet, GenericChange, StatusChange
from .base import BaseService
from .conflict_checker import ConflictChecker

logger = logging.getLogger(__name__)


class BookingLifecycleService(BaseService):
    """
    Service enforcing the booking state machine and the conflict invariant.

    Lifecycle:
        pending   -> confirmed | cancelled | no-show
        confirmed -> completed | cancelled | no-show
    """

    def __init__(self, db: Session, conflict_checker: Optional[ConflictChecker] = None):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.audit_repository = RepositoryFactory.create_audit_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.booking_repository)

    # Building blocks (caller owns the transaction)

    def apply_transition(
        self,
        booking: Booking,
        new_status: Any,
        *,
        flags: Optional[Dict[str, bool]] = None,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> bool:
        """
        Move a booking to new_status if it is still in the status we read.

        Flags given alongside are set in the same UPDATE.

        Returns:
            True if the write landed, False if another writer moved the booking first

        Raises:
            InvalidStatusTransitionException: if the edge is not allowed
        """
        current = coerce_status(booking.status)
        target = ensure_transition(current, new_status)

        applied = self.booking_repository.update_booking_status(
            booking.id,
            status=target.value,
            flags=flags,
            expected_statuses=[current.value],
        )
        if not applied:
            self.logger.info(
                f"Booking {booking.id} left {current.value} before {target.value} was applied",
                extra={"booking_id": booking.id, "tenant_id": booking.tenant_id},
            )
            return False

        changes = [StatusChange(from_status=current.value, to_status=target.value, reason=reason)]
        changes.extend(FlagSet(flag=flag) for flag in (flags or {}))
        self.audit_repository.record_booking_change(
            tenant_id=booking.tenant_id,
            booking_id=booking.id,
            action=f"status_{target.value.replace('-', '_')}",
            changes=changes,
            actor=actor,
        )
        return True

    def mark_flag(self, booking: Booking, flag: str, *, actor: Optional[str] = None) -> bool:
        """Set an idempotency flag; a flag that is already set is left untouched."""
        if getattr(booking, flag, None) is True:
            return False
        applied = self.booking_repository.update_booking_status(booking.id, flags={flag: True})
        if applied:
            self.audit_repository.record_booking_change(
                tenant_id=booking.tenant_id,
                booking_id=booking.id,
                action=flag,
                changes=[FlagSet(flag=flag)],
                actor=actor,
            )
        return applied

    # Operator operations

    @BaseService.measure_operation("transition")
    def transition(
        self,
        tenant_id: str,
        booking_id: str,
        new_status: Any,
        *,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Booking:
        """
        Apply an operator-driven status change.

        Confirming re-runs the conflict check against the booking's resource.

        Raises:
            NotFoundException: if the booking does not belong to the tenant
            InvalidStatusTransitionException: if the edge is not allowed
            BookingConflictException: if confirming would double-book the resource
            ConflictException: if the booking changed status concurrently
        """
        booking = self.booking_repository.get_for_tenant(tenant_id, booking_id)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")

        target = ensure_transition(booking.status, new_status)
        if target is BookingStatus.CONFIRMED:
            start, end = booking.interval()
            conflicts = self.conflict_checker.find_conflicts(
                tenant_id, start, end, booking.resource_id, exclude_booking_id=booking.id
            )
            if conflicts:
                raise BookingConflictException(
                    details={"conflicts": self.conflict_checker.describe_conflicts(conflicts)}
                )

        with self.transaction():
            applied = self.apply_transition(booking, target, actor=actor, reason=reason)
            if not applied:
                raise ConflictException(
                    f"Booking {booking_id} was updated by another process",
                    code="STALE_BOOKING_STATUS",
                )

        self.db.refresh(booking)
        self.logger.info(
            f"Booking {booking_id} moved to {target.value}",
            extra={"booking_id": booking_id, "tenant_id": tenant_id, "actor": actor},
        )
        return booking

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        tenant_id: str,
        *,
        customer_name: str,
        service_name: str,
        start_time: datetime,
        duration_minutes: int,
        end_time: Optional[datetime] = None,
        resource_id: Optional[str] = None,
        actor: Optional[str] = None,
        **fields: Any,
    ) -> Booking:
        """
        Create a pending booking after checking the resource is free.

        end_time defaults to start_time + duration_minutes. Naive times are read as UTC.

        Raises:
            ValidationException: if the duration or interval is invalid
            BookingConflictException: if the resource is already booked
        """
        if not duration_minutes or duration_minutes <= 0:
            raise ValidationException("Duration must be greater than zero", code="INVALID_DURATION")
        start_time = as_utc(start_time)
        if end_time is not None:
            end_time = as_utc(end_time)

        booking = Booking(
            tenant_id=tenant_id,
            customer_name=customer_name,
            service_name=service_name,
            start_time=start_time,
            end_time=end_time,
            duration_minutes=duration_minutes,
            resource_id=resource_id,
            status=BookingStatus.PENDING.value,
            **fields,
        )
        start, end = booking.interval()

        conflicts = self.conflict_checker.find_conflicts(tenant_id, start, end, resource_id)
        if conflicts:
            raise BookingConflictException(
                details={"conflicts": self.conflict_checker.describe_conflicts(conflicts)}
            )

        with self.transaction():
            self.db.add(booking)
            self.db.flush()
            self.audit_repository.record_booking_change(
                tenant_id=tenant_id,
                booking_id=booking.id,
                action="created",
                changes=[
                    GenericChange(
                        values={
                            "status": booking.status,
                            "start_time": start.isoformat(),
                            "end_time": end.isoformat(),
                            "resource_id": resource_id,
                        }
                    )
                ],
                actor=actor,
            )
        return booking
