"""
Model registry for the booking engine.

Importing this package registers every table on ``Base.metadata``.
"""

from .audit_log import AuditLog
from .booking import ACTIVE_STATUSES, Booking, BookingStatus
from .tenant import Tenant

__all__ = [
    "ACTIVE_STATUSES",
    "AuditLog",
    "Booking",
    "BookingStatus",
    "Tenant",
]
