# backend/barberbook/services/conflict_checker.py
"""
Conflict Checker Service for the booking engine.

Decides whether a candidate interval collides with an active booking and,
when no barber was requested, picks the first free barber of the shop.

Intervals are half-open: [start, end). Two intervals overlap when
stored_start < candidate_end AND stored_end > candidate_start. Cancelled
bookings never block.

This check runs before writing and gives a fast, friendly rejection. The
authoritative guard is the database exclusion constraint; the booking
service maps its violation to the same conflict error.
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import BookingConflictException
from ..models.booking import Booking, BookingStatus
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.staff_repository import StaffRepository
from .base import BaseService

logger = logging.getLogger(__name__)

BARBER_CONFLICT_MESSAGE = "The selected barber already has a booking at this time"
NO_BARBER_AVAILABLE_MESSAGE = "No barber is available at this time"


def intervals_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open overlap on zero-padded "HH:mm" strings."""
    return a_start < b_end and a_end > b_start


@dataclass(frozen=True)
class SlotAssignment:
    barber_id: Optional[str]
    auto_assigned: bool = False


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts.

    Centralizes overlap detection so create and update apply the same rules.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[ConflictCheckerRepository] = None,
        staff_repository: Optional[StaffRepository] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)
        self.staff_repository = staff_repository or RepositoryFactory.create_staff_repository(db)

    @staticmethod
    def _describe(bookings: List[Booking], start_time: str, end_time: str) -> List[Dict[str, Any]]:
        return [
            {
                "booking_id": booking.id,
                "barber_id": booking.barber_id,
                "start_time": booking.start_time,
                "end_time": booking.end_time,
                "status": booking.status,
            }
            for booking in bookings
            if booking.status != BookingStatus.CANCELLED.value
            and intervals_overlap(booking.start_time, booking.end_time, start_time, end_time)
        ]

    @BaseService.measure_operation("check_barber_conflicts")
    def check_barber_conflicts(
        self,
        tenant_id: str,
        barber_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return active bookings of a barber overlapping [start_time, end_time).

        Args:
            tenant_id: Tenant owning the bookings
            barber_id: Staff membership id
            booking_date: Shop-local calendar date
            start_time: Candidate start "HH:mm"
            end_time: Candidate end "HH:mm"
            exclude_booking_id: Booking being updated, never counted against itself

        Returns:
            List of conflicting booking summaries
        """
        bookings = self.repository.get_barber_conflicts(
            tenant_id, barber_id, booking_date, start_time, end_time, exclude_booking_id
        )
        return self._describe(bookings, start_time, end_time)

    @BaseService.measure_operation("check_general_conflicts")
    def check_general_conflicts(
        self,
        tenant_id: str,
        shop_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Return active unassigned bookings of a shop overlapping the interval."""
        bookings = self.repository.get_general_conflicts(
            tenant_id, shop_id, booking_date, start_time, end_time, exclude_booking_id
        )
        return self._describe(bookings, start_time, end_time)

    def ensure_barber_free(
        self,
        tenant_id: str,
        barber_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        conflicts = self.check_barber_conflicts(
            tenant_id, barber_id, booking_date, start_time, end_time, exclude_booking_id
        )
        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} booking conflicts for barber {barber_id} "
                f"on {booking_date} between {start_time}-{end_time}"
            )
            raise BookingConflictException(
                BARBER_CONFLICT_MESSAGE,
                details={"barber_id": barber_id, "conflicts": conflicts},
            )

    def ensure_general_free(
        self,
        tenant_id: str,
        shop_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        conflicts = self.check_general_conflicts(
            tenant_id, shop_id, booking_date, start_time, end_time, exclude_booking_id
        )
        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} unassigned booking conflicts at shop {shop_id} "
                f"on {booking_date} between {start_time}-{end_time}"
            )
            raise BookingConflictException(
                NO_BARBER_AVAILABLE_MESSAGE,
                details={"shop_id": shop_id, "conflicts": conflicts},
            )

    @BaseService.measure_operation("resolve_slot")
    def resolve_slot(
        self,
        tenant_id: str,
        shop_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        barber_id: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
        auto_assign: bool = True,
    ) -> SlotAssignment:
        """
        Confirm the slot is free and decide which barber holds it.

        With a barber, any overlap on that barber is a conflict. Without one
        and with auto_assign, active barbers are tried in id order and the
        first free one is chosen. If none is free (or auto_assign is off) the
        booking stays unassigned, which only conflicts with other unassigned
        bookings of the shop.

        Raises:
            BookingConflictException: If the slot is taken
        """
        if barber_id:
            self.ensure_barber_free(
                tenant_id, barber_id, booking_date, start_time, end_time, exclude_booking_id
            )
            return SlotAssignment(barber_id=barber_id)

        if auto_assign:
            for staff in self.staff_repository.get_active_barbers(tenant_id, shop_id):
                if not self.check_barber_conflicts(
                    tenant_id, staff.id, booking_date, start_time, end_time, exclude_booking_id
                ):
                    self.logger.info(
                        f"Auto-assigned barber {staff.id} at shop {shop_id} "
                        f"on {booking_date} {start_time}-{end_time}"
                    )
                    return SlotAssignment(barber_id=staff.id, auto_assigned=True)

        self.ensure_general_free(
            tenant_id, shop_id, booking_date, start_time, end_time, exclude_booking_id
        )
        return SlotAssignment(barber_id=None)
