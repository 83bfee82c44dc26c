# backend/tests/unit/core/test_exceptions.py
from decimal import Decimal

import pytest

from barberbook.core.exceptions import (
    BookingConflictException,
    DomainException,
    ForbiddenException,
    LeadTimeViolationException,
    NoStaffException,
    NotFoundException,
    OutOfHoursException,
    PriceMismatchException,
    ServiceException,
    TooEarlyException,
    UnauthorizedException,
    ValidationException,
)


@pytest.mark.parametrize(
    "exc,status_code,code",
    [
        (ValidationException("bad"), 400, "VALIDATION"),
        (NotFoundException("missing"), 404, "NOT_FOUND"),
        (BookingConflictException(), 409, "CONFLICT"),
        (UnauthorizedException("who"), 401, "UNAUTHORIZED"),
        (ForbiddenException("no"), 403, "FORBIDDEN"),
        (LeadTimeViolationException(30, 12.3456), 422, "LEAD_TIME_VIOLATION"),
        (PriceMismatchException(Decimal("10"), Decimal("12.50")), 422, "PRICE_MISMATCH"),
        (OutOfHoursException("2030-01-07", "18:00", "18:30"), 422, "OUT_OF_HOURS"),
        (TooEarlyException("wait"), 422, "TOO_EARLY"),
        (NoStaffException("nobody"), 422, "NO_STAFF"),
        (ServiceException("boom"), 500, "INTERNAL_ERROR"),
    ],
)
def test_status_and_code(exc, status_code, code):
    assert isinstance(exc, DomainException)
    assert exc.status_code == status_code
    assert exc.code == code

    http_exc = exc.to_http_exception()
    assert http_exc.status_code == status_code
    assert http_exc.detail["code"] == code
    assert http_exc.detail["message"] == exc.message


def test_explicit_code_overrides_default():
    exc = ValidationException("bad", code="CUSTOM")
    assert exc.code == "CUSTOM"


def test_lead_time_details_are_rounded():
    exc = LeadTimeViolationException(30, 12.3456)
    assert exc.details == {"required_minutes": 30, "provided_minutes": 12.35}


def test_price_mismatch_details_are_strings():
    exc = PriceMismatchException(Decimal("10"), Decimal("12.50"))
    assert exc.details == {"expected_total": "10", "computed_total": "12.50"}


def test_conflict_default_message():
    assert "conflicts" in BookingConflictException().message


def test_service_exception_fallback_message():
    detail = ServiceException("").to_http_exception().detail
    assert detail["message"] == "An error occurred processing your request"
