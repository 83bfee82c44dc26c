# backend/barberbook/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for the booking engine.

Overlap queries run on the stored shop-local "HH:mm" columns. Zero-padded
times compare correctly as strings, so the half-open overlap test
(stored_start < candidate_end AND stored_end > candidate_start) is pushed
down to the database. Cancelled bookings never block a slot.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[Booking]):
    """Repository for booking overlap queries."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def _overlapping(
        self,
        tenant_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str],
    ) -> Query:
        query = self.db.query(Booking).filter(
            Booking.tenant_id == tenant_id,
            Booking.booking_date == booking_date,
            Booking.status != BookingStatus.CANCELLED.value,
            Booking.start_time < end_time,
            Booking.end_time > start_time,
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query

    def get_barber_conflicts(
        self,
        tenant_id: str,
        barber_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Get active bookings of one barber that overlap the candidate interval.

        Args:
            tenant_id: Tenant owning the bookings
            barber_id: Staff membership id of the barber
            booking_date: Shop-local calendar date
            start_time: Candidate start "HH:mm"
            end_time: Candidate end "HH:mm"
            exclude_booking_id: Booking to ignore (the one being updated)

        Returns:
            Overlapping bookings ordered by start time
        """
        try:
            query = self._overlapping(
                tenant_id, booking_date, start_time, end_time, exclude_booking_id
            ).filter(Booking.barber_id == barber_id)
            return query.order_by(Booking.start_time).all()
        except Exception as e:
            self.logger.error(f"Error getting barber conflicts: {str(e)}")
            raise RepositoryException(f"Failed to get barber conflicts: {str(e)}")

    def get_general_conflicts(
        self,
        tenant_id: str,
        shop_id: str,
        booking_date: date,
        start_time: str,
        end_time: str,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """Get active unassigned bookings of a shop that overlap the candidate interval."""
        try:
            query = self._overlapping(
                tenant_id, booking_date, start_time, end_time, exclude_booking_id
            ).filter(Booking.shop_id == shop_id, Booking.barber_id.is_(None))
            return query.order_by(Booking.start_time).all()
        except Exception as e:
            self.logger.error(f"Error getting general conflicts: {str(e)}")
            raise RepositoryException(f"Failed to get general conflicts: {str(e)}")
