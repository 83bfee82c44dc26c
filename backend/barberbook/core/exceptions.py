# backend/barberbook/core/exceptions.py
"""
Domain-specific exceptions for the booking engine.

Every rejection the booking services produce is one of these. Each carries
a stable code from BookingErrorCode so callers can render an actionable
message, and knows its own HTTP status for the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from .enums import BookingErrorCode

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: BookingErrorCode = BookingErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = str(code or self.default_code.value)
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
    """Raised when input is malformed or references unknown records."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = BookingErrorCode.VALIDATION


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = BookingErrorCode.NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT
    default_code = BookingErrorCode.CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when the requester has no recognised relationship to the resource."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = BookingErrorCode.UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN
    default_code = BookingErrorCode.FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails unexpectedly."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when a booking overlaps an existing active booking."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            details=details or {},
        )


class LeadTimeViolationException(BusinessRuleException):
    """Raised when a future booking starts sooner than the tenant's minimum lead time."""

    default_code = BookingErrorCode.LEAD_TIME_VIOLATION

    def __init__(self, required_minutes: int, provided_minutes: float):
        super().__init__(
            message=f"Bookings must be made at least {required_minutes} minutes in advance",
            details={
                "required_minutes": required_minutes,
                "provided_minutes": round(provided_minutes, 2),
            },
        )


class PriceMismatchException(BusinessRuleException):
    """Raised when the client-asserted price disagrees with the computed price."""

    default_code = BookingErrorCode.PRICE_MISMATCH

    def __init__(self, expected: Any, computed: Any):
        super().__init__(
            message="Total price does not match the current price for this booking",
            details={"expected_total": str(expected), "computed_total": str(computed)},
        )


class OutOfHoursException(BusinessRuleException):
    """Raised when a booking falls outside the shop's working hours."""

    default_code = BookingErrorCode.OUT_OF_HOURS

    def __init__(self, booking_date: Any, start_time: str, end_time: str):
        super().__init__(
            message="Booking is outside the shop's working hours",
            details={
                "booking_date": str(booking_date),
                "start_time": start_time,
                "end_time": end_time,
            },
        )


class TooEarlyException(BusinessRuleException):
    """Raised when a time-gated status change is requested before it is allowed."""

    default_code = BookingErrorCode.TOO_EARLY


class NoStaffException(BusinessRuleException):
    """Raised when a booking without an assigned barber is marked completed."""

    default_code = BookingErrorCode.NO_STAFF


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Wraps database errors raised during data access so services can decide
    whether they are business-shaped (e.g. an overlap constraint) or internal.
    """
