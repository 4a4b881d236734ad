# backend/booking_engine/repositories/tenant_repository.py
"""Tenant data access for the automation sweep."""

import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import TENANT_STATUS_ACTIVE
from ..core.exceptions import RepositoryException
from ..models.tenant import Tenant
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TenantRepository(BaseRepository[Tenant]):
    def __init__(self, db: Session):
        super().__init__(db, Tenant)

    def find_active_tenants(self) -> List[Tenant]:
        """All tenants flagged active, in a stable order."""
        try:
            return (
                self.db.query(Tenant)
                .filter(Tenant.status == TENANT_STATUS_ACTIVE)
                .order_by(Tenant.created_at, Tenant.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing active tenants: {str(e)}")
            raise RepositoryException(f"Failed to list active tenants: {str(e)}")
