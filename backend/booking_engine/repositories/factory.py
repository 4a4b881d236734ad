# backend/booking_engine/repositories/factory.py
"""
Single place where services and automation jobs obtain repositories.

Every repository is bound to the caller's session, so a job working one
tenant never shares a unit of work with another.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from .audit_repository import AuditRepository
    from .booking_repository import BookingRepository
    from .tenant_repository import TenantRepository


class RepositoryFactory:
    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_tenant_repository(db: Session) -> "TenantRepository":
        from .tenant_repository import TenantRepository

        return TenantRepository(db)

    @staticmethod
    def create_audit_repository(db: Session) -> "AuditRepository":
        from .audit_repository import AuditRepository

        return AuditRepository(db)
