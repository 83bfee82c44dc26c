# backend/tests/unit/services/test_booking_conflict_messages.py
from __future__ import annotations

from typing import Optional
from unittest.mock import MagicMock, Mock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from barberbook.core.exceptions import BookingConflictException, RepositoryException, ServiceException
from barberbook.services.booking_service import (
    GENERAL_CONFLICT_MESSAGE,
    TIME_ORDER_MESSAGE,
    BookingService,
)
from barberbook.services.conflict_checker import BARBER_CONFLICT_MESSAGE


class _FakeDiag:
    def __init__(self, constraint_name: str) -> None:
        self.constraint_name = constraint_name


class _FakeOrig:
    def __init__(self, constraint_name: Optional[str], text: str = "", pgcode: Optional[str] = None) -> None:
        self.diag = _FakeDiag(constraint_name) if constraint_name else None
        self.pgcode = pgcode
        self._text = text

    def __str__(self) -> str:
        return self._text


def _make_error(constraint: Optional[str], text: str = "") -> IntegrityError:
    return IntegrityError("stmt", params=None, orig=_FakeOrig(constraint, text=text))


def _bare_service() -> BookingService:
    service = BookingService.__new__(BookingService)
    service.logger = Mock()
    return service


def test_resolve_integrity_conflict_barber() -> None:
    message = _bare_service()._resolve_integrity_conflict_message(
        _make_error("bookings_no_overlap_per_barber")
    )
    assert message == BARBER_CONFLICT_MESSAGE


def test_resolve_integrity_conflict_general() -> None:
    message = _bare_service()._resolve_integrity_conflict_message(
        _make_error("bookings_no_overlap_general")
    )
    assert message == GENERAL_CONFLICT_MESSAGE


def test_resolve_integrity_conflict_time_order() -> None:
    message = _bare_service()._resolve_integrity_conflict_message(
        _make_error("bookings_time_order")
    )
    assert message == TIME_ORDER_MESSAGE


def test_resolve_integrity_conflict_via_text_fallback() -> None:
    error = _make_error(
        None,
        text="conflicting key value violates exclusion constraint bookings_no_overlap_per_barber",
    )
    assert _bare_service()._resolve_integrity_conflict_message(error) == BARBER_CONFLICT_MESSAGE


def test_unrelated_integrity_error_is_not_a_conflict() -> None:
    assert _bare_service()._resolve_integrity_conflict_message(
        _make_error("fk_bookings_shop", text="violates foreign key constraint")
    ) is None


class TestRunInTransaction:
    def _service_with_failing_work(self, exc: Exception) -> tuple:
        service = _bare_service()
        service.repository = MagicMock()

        def work():
            raise exc

        return service, work

    def test_integrity_error_on_commit_becomes_conflict(self) -> None:
        service, work = self._service_with_failing_work(_make_error("bookings_no_overlap_general"))

        with pytest.raises(BookingConflictException) as exc_info:
            service._run_in_transaction(work, {"shop_id": "shop-1"})

        assert exc_info.value.message == GENERAL_CONFLICT_MESSAGE
        assert exc_info.value.details == {"shop_id": "shop-1"}

    def test_unrelated_integrity_error_is_internal(self) -> None:
        service, work = self._service_with_failing_work(_make_error(None, text="not null violated"))

        with pytest.raises(ServiceException):
            service._run_in_transaction(work, {})

    def test_deadlock_becomes_conflict(self) -> None:
        deadlock = OperationalError("stmt", params=None, orig=_FakeOrig(None, pgcode="40P01"))
        service, work = self._service_with_failing_work(deadlock)

        with pytest.raises(BookingConflictException):
            service._run_in_transaction(work, {})

    def test_deadlock_detected_by_message(self) -> None:
        deadlock = OperationalError("stmt", params=None, orig=_FakeOrig(None, text="deadlock detected"))
        service, work = self._service_with_failing_work(deadlock)

        with pytest.raises(BookingConflictException):
            service._run_in_transaction(work, {})

    def test_other_operational_errors_are_internal(self) -> None:
        lost = OperationalError("stmt", params=None, orig=_FakeOrig(None, text="server closed the connection"))
        service, work = self._service_with_failing_work(lost)

        with pytest.raises(ServiceException):
            service._run_in_transaction(work, {})

    @pytest.mark.parametrize(
        "message",
        [
            "Integrity constraint violated: bookings_no_overlap_general",
            "conflicting key value violates exclusion constraint",
            "deadlock detected while waiting for ShareLock",
        ],
    )
    def test_repository_overlap_errors_become_conflicts(self, message: str) -> None:
        service, work = self._service_with_failing_work(RepositoryException(message))

        with pytest.raises(BookingConflictException):
            service._run_in_transaction(work, {})
