# backend/booking_engine/models/tenant.py
"""
Tenant model: an isolated business account.

Only the fields the booking engine reads are modelled here; the rest of the
tenant configuration lives with the platform's settings screens.
"""

from sqlalchemy import JSON, Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from ..core.constants import TENANT_STATUS_ACTIVE
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime, utcnow


class Tenant(Base):
    """Business account whose bookings are swept by the automation jobs."""

    __tablename__ = "tenants"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    name = Column(String(200), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=TENANT_STATUS_ACTIVE, index=True)

    # Notification toggles and display
    company_name = Column(String(200), nullable=True)
    email_notifications = Column(Boolean, nullable=False, default=True)
    sms_notifications = Column(Boolean, nullable=False, default=False)
    timezone = Column(String(64), nullable=False, default="UTC")

    # Automation policy overrides (NULL = platform default)
    auto_confirm_bookings = Column(Boolean, nullable=False, default=True)
    reminder_hours_before = Column(Integer, nullable=True)
    no_show_grace_minutes = Column(Integer, nullable=True)

    # {"email": {"booking_reminder": "subject|body"}, "sms": {"booking_reminder": "body"}}
    notification_templates = Column(JSON, nullable=True)
    contact_email = Column(String(320), nullable=True)
    contact_phone = Column(String(32), nullable=True)

    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    bookings = relationship("Booking", back_populates="tenant")

    def __repr__(self) -> str:
        return f"<Tenant {self.slug} status={self.status}>"
