# backend/booking_engine/models/audit_log.py
"""
Audit logging model capturing lifecycle changes made to bookings.

Automations write one row per committed side effect (status transition or
idempotency flag). ``changes`` holds a list of tagged entries; see
booking_engine.schemas.audit for the variants.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import JSON, Column, String, Text

from ..core.ulid_helper import generate_ulid
from ..database import Base
from ..schemas.audit import AuditChange, dump_changes, parse_changes
from .types import UTCDateTime, utcnow


class AuditLog(Base):
    """Persistence model for audit trail entries."""

    __tablename__ = "audit_log"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    tenant_id = Column(String(26), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    actor = Column(String(100), nullable=True)
    occurred_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    changes = Column(JSON, nullable=True)
    note = Column(Text, nullable=True)

    @classmethod
    def from_changes(
        cls,
        *,
        tenant_id: str,
        entity_type: str,
        entity_id: str,
        action: str,
        changes: List[AuditChange],
        actor: Optional[str] = None,
        note: Optional[str] = None,
    ) -> "AuditLog":
        """Factory helper to build an AuditLog instance from typed change entries."""
        return cls(
            tenant_id=tenant_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor=actor,
            changes=dump_changes(changes),
            note=note,
        )

    @property
    def parsed_changes(self) -> List[AuditChange]:
        return parse_changes(self.changes)
