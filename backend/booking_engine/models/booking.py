# backend/booking_engine/models/booking.py
"""
Booking model for the booking engine.

A booking is a tenant-scoped appointment occupying the half-open interval
[start_time, end_time) on an optional staff resource. Bookings are created
by the intake collaborator in PENDING and afterwards only move forward
through the lifecycle (see booking_engine.services.booking_lifecycle).

The reminder_sent and confirmation_sent columns are idempotency flags:
automations check them before a side effect and set them afterwards, and
never clear them.
"""

from datetime import datetime, timedelta
from enum import Enum
import logging
from typing import Optional, Tuple

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..core.exceptions import MalformedBookingException
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Created by intake, awaiting confirmation
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"  # Customer did not arrive within the grace period


# Statuses that hold a resource; only these take part in conflict detection
ACTIVE_STATUSES: Tuple[str, ...] = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    """
    Tenant-scoped appointment record.

    start_time and end_time are nullable at the storage level because legacy
    imports exist without them; the engine treats such rows as malformed
    (see interval()).
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    tenant_id = Column(String(26), ForeignKey("tenants.id"), nullable=False, index=True)

    # Notification destination
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(320), nullable=True)
    customer_phone = Column(String(32), nullable=True)

    service_name = Column(String(200), nullable=False)
    service_description = Column(Text, nullable=True)

    # Staff/resource; absent means unconstrained by resource conflicts
    resource_id = Column(String(64), nullable=True, index=True)
    staff_name = Column(String(200), nullable=True)

    start_time = Column(UTCDateTime(), nullable=True)
    end_time = Column(UTCDateTime(), nullable=True)
    duration_minutes = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    reminder_sent = Column(Boolean, nullable=False, default=False)
    confirmation_sent = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=utcnow)
    confirmed_at = Column(UTCDateTime(), nullable=True)
    completed_at = Column(UTCDateTime(), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    no_show_at = Column(UTCDateTime(), nullable=True)

    tenant = relationship("Tenant", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_bookings_duration_positive"),
        Index("ix_bookings_tenant_start", "tenant_id", "start_time"),
        Index("ix_bookings_tenant_status", "tenant_id", "status"),
        Index("ix_bookings_tenant_resource_start", "tenant_id", "resource_id", "start_time"),
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.end_time is None:
            self.end_time = self.derive_end_time()

    def derive_end_time(self) -> Optional[datetime]:
        """start_time + duration, or None when either is missing."""
        if self.start_time is None or not self.duration_minutes:
            return None
        return self.start_time + timedelta(minutes=int(self.duration_minutes))

    def interval(self) -> Tuple[datetime, datetime]:
        """
        Return the booking's [start, end) interval.

        Raises:
            MalformedBookingException: if a bound is missing or not increasing
        """
        if self.start_time is None:
            raise MalformedBookingException(str(self.id), "Booking has no start time")
        end = self.end_time or self.derive_end_time()
        if end is None:
            raise MalformedBookingException(str(self.id), "Booking has no end time")
        if not self.start_time < end:
            raise MalformedBookingException(str(self.id), "Booking ends before it starts")
        return self.start_time, end

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} tenant={self.tenant_id} status={self.status} "
            f"start={self.start_time}>"
        )
