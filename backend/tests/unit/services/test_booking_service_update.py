# backend/tests/unit/services/test_booking_service_update.py
"""
Integration tests for BookingService.update_booking on SQLite.

Bookings are created through the service at 10:00 on BOOKING_DATE with the
clock a week earlier; tests move the clock when a time guard matters.
"""

from datetime import date
from decimal import Decimal

import pytest

from barberbook.core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    LeadTimeViolationException,
    NoStaffException,
    NotFoundException,
    OutOfHoursException,
    PriceMismatchException,
    TooEarlyException,
    UnauthorizedException,
    ValidationException,
)
from barberbook.models import Service
from barberbook.monitoring.prometheus_metrics import REGISTRY
from barberbook.schemas.booking import BookingActor, BookingUpdate
from tests.factories.booking_builders import (
    BARBER_A,
    BARBER_A_USER,
    BARBER_B,
    BEARD,
    COLOR,
    CUSTOMER_ID,
    CUT,
    MONDAY,
    OTHER_TENANT_ID,
    RECEPTIONIST_USER,
    TENANT_ID,
    add_working_hours,
    make_booking,
    utc,
)

CUSTOMER = BookingActor(id=CUSTOMER_ID, role="customer")
BARBER = BookingActor(id=BARBER_A_USER, role="barber")
FRONT_DESK = BookingActor(id=RECEPTIONIST_USER, role="barber")
ADMIN = BookingActor(id="ops-1", role="admin")
STRANGER = BookingActor(id="someone-else", role="customer")


def _update(service, booking, actor, **changes):
    return service.update_booking(booking.id, TENANT_ID, actor, BookingUpdate(**changes))


@pytest.fixture
def booking(booking_service):
    return make_booking(booking_service)


class TestAuthorization:
    def test_unknown_booking(self, booking_service):
        with pytest.raises(NotFoundException):
            booking_service.update_booking("missing", TENANT_ID, ADMIN, BookingUpdate(notes="x"))

    def test_other_tenant_cannot_see_booking(self, booking_service, booking):
        with pytest.raises(NotFoundException):
            booking_service.update_booking(
                booking.id, OTHER_TENANT_ID, ADMIN, BookingUpdate(notes="x")
            )

    def test_anonymous_is_unauthorized(self, booking_service, booking):
        with pytest.raises(UnauthorizedException):
            _update(booking_service, booking, None, status="cancelled")

    def test_unrelated_user_is_unauthorized(self, booking_service, booking):
        with pytest.raises(UnauthorizedException):
            _update(booking_service, booking, STRANGER, notes="hello")

    def test_customer_cannot_confirm(self, booking_service, booking):
        with pytest.raises(ForbiddenException) as exc_info:
            _update(booking_service, booking, CUSTOMER, status="confirmed")

        assert exc_info.value.code == "FORBIDDEN"

    def test_customer_cancels_pending_booking(self, booking_service, booking, listener):
        updated = _update(booking_service, booking, CUSTOMER, status="cancelled")

        assert updated.status == "cancelled"
        events = listener.of_type("BookingStatusChanged")
        assert len(events) == 1
        assert events[0].from_status == "pending"
        assert events[0].to_status == "cancelled"
        assert events[0].actor_class == "customer"

    @pytest.mark.parametrize(
        "changes",
        [
            {"start_time": "11:00"},
            {"booking_date": date(2030, 1, 8)},
            {"service_ids": [CUT, BEARD]},
            {"barber_id": BARBER_B},
        ],
    )
    def test_customer_cannot_reschedule(self, booking_service, booking, changes):
        with pytest.raises(ForbiddenException):
            _update(booking_service, booking, CUSTOMER, **changes)

    def test_customer_edits_notes(self, booking_service, booking, clock):
        # Inside the lead-time window; notes do not move the schedule
        clock.set(utc(2030, 1, 7, 9, 50))

        updated = _update(booking_service, booking, CUSTOMER, notes="Running late")

        assert updated.notes == "Running late"
        assert updated.status == "pending"

    def test_same_status_is_not_a_transition(self, booking_service, booking, listener):
        _update(booking_service, booking, CUSTOMER, status="pending", notes="same")

        assert listener.of_type("BookingStatusChanged") == []


class TestStaffTransitions:
    def test_receptionist_confirms(self, booking_service, booking):
        updated = _update(booking_service, booking, FRONT_DESK, status="confirmed")
        assert updated.status == "confirmed"

    def test_staff_of_another_shop_is_a_guest(self, db, booking_service, booking):
        outsider = BookingActor(id="user-other-shop", role="barber")
        with pytest.raises(UnauthorizedException):
            _update(booking_service, booking, outsider, status="confirmed")

    def test_no_show_before_grace_then_after(self, booking_service, booking, clock):
        clock.set(utc(2030, 1, 7, 10, 5))
        with pytest.raises(TooEarlyException):
            _update(booking_service, booking, BARBER, status="no_show")

        clock.set(utc(2030, 1, 7, 10, 40))
        updated = _update(booking_service, booking, BARBER, status="no_show")

        assert updated.status == "no_show"

    def test_complete_after_end(self, booking_service, booking, clock):
        _update(booking_service, booking, BARBER, status="confirmed")
        clock.set(utc(2030, 1, 7, 10, 20))
        with pytest.raises(TooEarlyException):
            _update(booking_service, booking, BARBER, status="completed")

        clock.set(utc(2030, 1, 7, 10, 30))
        updated = _update(booking_service, booking, BARBER, status="completed")

        assert updated.status == "completed"

    def test_unassigned_booking_cannot_be_completed(self, booking_service, clock):
        make_booking(booking_service, barber_id=BARBER_A, customer_id="customer-2")
        make_booking(booking_service, barber_id=BARBER_B, customer_id="customer-3")
        unassigned = make_booking(booking_service, barber_id=None)
        assert unassigned.barber_id is None

        _update(booking_service, unassigned, FRONT_DESK, status="confirmed")
        clock.set(utc(2030, 1, 7, 11, 0))

        with pytest.raises(NoStaffException) as exc_info:
            _update(booking_service, unassigned, FRONT_DESK, status="completed")

        assert exc_info.value.code == "NO_STAFF"

    def test_terminal_state_is_locked_for_staff(self, booking_service, booking):
        _update(booking_service, booking, BARBER, status="cancelled")

        with pytest.raises(ForbiddenException):
            _update(booking_service, booking, BARBER, status="confirmed")

    def test_transition_metric_is_recorded(self, booking_service, booking):
        labels = {"from_status": "pending", "to_status": "confirmed", "actor": "staff"}
        before = REGISTRY.get_sample_value("barberbook_bookings_status_transitions_total", labels) or 0.0

        _update(booking_service, booking, BARBER, status="confirmed")

        after = REGISTRY.get_sample_value("barberbook_bookings_status_transitions_total", labels)
        assert after == before + 1


class TestAdmin:
    def test_admin_reopens_cancelled_booking(self, booking_service, booking):
        _update(booking_service, booking, CUSTOMER, status="cancelled")

        updated = _update(booking_service, booking, ADMIN, status="confirmed")

        assert updated.status == "confirmed"

    def test_reopening_into_a_taken_slot_conflicts(self, booking_service, booking):
        _update(booking_service, booking, CUSTOMER, status="cancelled")
        make_booking(booking_service, customer_id="customer-2")

        with pytest.raises(BookingConflictException):
            _update(booking_service, booking, ADMIN, status="confirmed")

    def test_supervisor_counts_as_admin(self, booking_service, booking):
        supervisor = BookingActor(id="ops-2", role="supervisor")
        updated = _update(booking_service, booking, supervisor, status="confirmed", barber_id=BARBER_B)

        assert updated.status == "confirmed"
        assert updated.barber_id == BARBER_B


class TestRescheduling:
    def test_move_start_recomputes_end_and_instants(self, booking_service, booking):
        updated = _update(booking_service, booking, BARBER, start_time="14:00")

        assert updated.start_time == "14:00"
        assert updated.end_time == "14:30"
        assert updated.start_at == utc(2030, 1, 7, 14, 0)
        assert updated.end_at == utc(2030, 1, 7, 14, 30)
        assert updated.updated_at is not None

    def test_change_services_reprices(self, booking_service, booking):
        updated = _update(booking_service, booking, BARBER, service_ids=[CUT, BEARD])

        assert updated.end_time == "10:45"
        assert updated.total_price == Decimal("35.00")
        assert updated.service_ids == [CUT, BEARD]

    def test_self_overlap_is_not_a_conflict(self, booking_service, booking):
        updated = _update(booking_service, booking, BARBER, start_time="10:15")
        assert updated.end_time == "10:45"

    def test_move_onto_another_booking_conflicts(self, booking_service, booking):
        make_booking(booking_service, start_time="11:00", customer_id="customer-2")

        with pytest.raises(BookingConflictException):
            _update(booking_service, booking, BARBER, service_ids=[COLOR, CUT])

    def test_move_to_other_barber(self, booking_service, booking):
        updated = _update(booking_service, booking, BARBER, barber_id=BARBER_B)
        assert updated.barber_id == BARBER_B

    def test_unassign_barber(self, booking_service, booking):
        updated = _update(booking_service, booking, ADMIN, barber_id=None)
        assert updated.barber_id is None

    def test_update_never_auto_assigns(self, booking_service, booking):
        updated = _update(booking_service, booking, ADMIN, barber_id=None, start_time="15:00")
        assert updated.barber_id is None

    def test_reschedule_inside_lead_time_is_rejected(self, booking_service, booking, clock):
        clock.set(utc(2030, 1, 7, 9, 0))

        with pytest.raises(LeadTimeViolationException):
            _update(booking_service, booking, BARBER, start_time="09:15")

    def test_reschedule_out_of_hours(self, db, booking_service, booking):
        add_working_hours(db, MONDAY + 1, [(9 * 60, 12 * 60)])

        with pytest.raises(OutOfHoursException):
            _update(booking_service, booking, BARBER, booking_date=date(2030, 1, 8), start_time="12:00")

    def test_asserted_price_must_match(self, booking_service, booking):
        with pytest.raises(PriceMismatchException):
            _update(
                booking_service,
                booking,
                BARBER,
                service_ids=[CUT, BEARD],
                total_price=Decimal("25.00"),
            )

    def test_rejected_update_leaves_booking_unchanged(self, db, booking_service, booking):
        make_booking(booking_service, start_time="11:00", customer_id="customer-2")

        with pytest.raises(BookingConflictException):
            _update(booking_service, booking, BARBER, start_time="11:00")

        stored = booking_service.get_booking(booking.id, TENANT_ID)
        db.refresh(stored)
        assert stored.start_time == "10:00"
        assert stored.end_time == "10:30"

    def test_retired_service_does_not_block_unrelated_edits(self, db, booking_service, booking):
        db.query(Service).filter(Service.id == CUT).update({"is_active": False})
        db.commit()

        updated = _update(booking_service, booking, BARBER, notes="Regular customer")

        assert updated.notes == "Regular customer"

    def test_retired_service_cannot_be_requested_again(self, db, booking_service, booking):
        db.query(Service).filter(Service.id == BEARD).update({"is_active": False})
        db.commit()

        with pytest.raises(ValidationException):
            _update(booking_service, booking, BARBER, service_ids=[CUT, BEARD])

    def test_cancelled_booking_skips_slot_checks(self, db, booking_service, booking):
        make_booking(booking_service, barber_id=BARBER_B, start_time="14:00", customer_id="customer-2")

        # Cancel and move onto a taken slot in one request
        updated = _update(
            booking_service, booking, ADMIN, status="cancelled", barber_id=BARBER_B, start_time="14:00"
        )

        assert updated.status == "cancelled"
