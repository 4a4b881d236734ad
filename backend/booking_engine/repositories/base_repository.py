# backend/booking_engine/repositories/base_repository.py
"""
Shared base for the engine's repositories.

Repositories wrap one model each, translate SQLAlchemy failures into
RepositoryException and never commit: the calling service or automation job
owns the unit of work.
"""

import logging
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException

ModelT = TypeVar("ModelT")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelT]):
    """
    Attributes:
        db: Session supplied by the owning service
        model: Mapped class this repository reads and writes
    """

    def __init__(self, db: Session, model: Type[ModelT]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str) -> Optional[ModelT]:
        """Load one row by primary key, or None."""
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading {self.model.__name__} {id}: {str(e)}")
            raise RepositoryException(f"Failed to load {self.model.__name__} {id}: {str(e)}")
