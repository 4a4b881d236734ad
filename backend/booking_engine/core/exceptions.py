# backend/booking_engine/core/exceptions.py
"""
Error types raised by the booking engine.

Routes turn a DomainException into an HTTP response with to_http_exception().
Automation jobs never let one escape: each becomes an entry in the run's
AutomationResult.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Carries a human message, a stable code and structured details."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Input that can never be valid, whatever the booking state."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Unknown tenant or booking id."""

    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedException(DomainException):
    """Raised when a trigger request does not carry the cron secret."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ConflictException(DomainException):
    """The write would collide with data already stored."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Valid input that the current booking state does not allow."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Infrastructure failure inside a service (database, transport)."""


# Booking errors


class BookingConflictException(ConflictException):
    """Raised when a booking overlaps another active booking for the same resource."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class InvalidStatusTransitionException(BusinessRuleException):
    """Raised when a status change is not an edge of the booking lifecycle."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            message=f"Cannot move booking from {current_status} to {new_status}",
            code="INVALID_STATUS_TRANSITION",
            details={"current_status": current_status, "new_status": new_status},
        )


class MalformedBookingException(ValidationException):
    """Raised when a stored booking lacks data the engine needs (e.g. start time)."""

    def __init__(self, booking_id: str, reason: str):
        super().__init__(
            message=reason,
            code="MALFORMED_BOOKING",
            details={"booking_id": booking_id},
        )


class NotificationDeliveryException(ServiceException):
    """Raised by a transport when a message could not be handed off."""

    def __init__(self, channel: str, reason: str):
        super().__init__(
            message=f"{channel} delivery failed: {reason}",
            code="NOTIFICATION_DELIVERY_FAILED",
            details={"channel": channel},
        )


class RepositoryException(Exception):
    """A query or write failed in the data layer, including statement timeouts."""
