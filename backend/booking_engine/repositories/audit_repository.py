# backend/booking_engine/repositories/audit_repository.py
"""Append-only access to the audit trail."""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.audit_log import AuditLog
from ..schemas.audit import AuditChange
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AuditRepository(BaseRepository[AuditLog]):
    def __init__(self, db: Session):
        super().__init__(db, AuditLog)

    def record_booking_change(
        self,
        *,
        tenant_id: str,
        booking_id: str,
        action: str,
        changes: List[AuditChange],
        actor: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AuditLog:
        """Stage an audit row for a booking; committed with the caller's unit of work."""
        entry = AuditLog.from_changes(
            tenant_id=tenant_id,
            entity_type="booking",
            entity_id=booking_id,
            action=action,
            changes=changes,
            actor=actor,
            note=note,
        )
        try:
            self.db.add(entry)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error writing audit entry for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to write audit entry: {str(e)}")
        return entry

    def list_for_booking(self, booking_id: str) -> List[AuditLog]:
        try:
            return (
                self.db.query(AuditLog)
                .filter(AuditLog.entity_type == "booking", AuditLog.entity_id == booking_id)
                .order_by(AuditLog.occurred_at, AuditLog.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error reading audit entries for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to read audit entries: {str(e)}")
