"""Repository layer for the booking engine."""

from .base_repository import BaseRepository
from .booking_repository import BookingFilter, BookingRepository
from .factory import RepositoryFactory

__all__ = ["BaseRepository", "BookingFilter", "BookingRepository", "RepositoryFactory"]
