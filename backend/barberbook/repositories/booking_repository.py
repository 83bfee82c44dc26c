# backend/barberbook/repositories/booking_repository.py
"""
Booking Repository for the booking engine.

Tenant-scoped reads of bookings and writes of their service lines.
"""

import logging
from datetime import date
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingServiceLine, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_for_tenant(self, booking_id: str, tenant_id: str) -> Optional[Booking]:
        """Load a booking with its service lines, or None if it belongs to another tenant."""
        query = (
            self._build_query()
            .options(selectinload(Booking.service_lines))
            .filter(Booking.id == booking_id, Booking.tenant_id == tenant_id)
        )
        return self._execute_first(query)

    def list_for_tenant(
        self,
        tenant_id: str,
        *,
        customer_id: Optional[str] = None,
        barber_id: Optional[str] = None,
        shop_id: Optional[str] = None,
        status: Optional[str] = None,
        booking_date: Optional[date] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Booking], int]:
        """
        Page through a tenant's bookings, newest first.

        Returns:
            The requested page and the total number of matching bookings
        """
        query = self._build_query().filter(Booking.tenant_id == tenant_id)
        if customer_id:
            query = query.filter(Booking.customer_id == customer_id)
        if barber_id:
            query = query.filter(Booking.barber_id == barber_id)
        if shop_id:
            query = query.filter(Booking.shop_id == shop_id)
        if status:
            query = query.filter(Booking.status == status)
        if booking_date:
            query = query.filter(Booking.booking_date == booking_date)

        try:
            total = query.count()
            page = (
                query.options(selectinload(Booking.service_lines))
                .order_by(Booking.created_at.desc(), Booking.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")
        return page, total

    def get_barber_day(self, tenant_id: str, barber_id: str, booking_date: date) -> List[Booking]:
        """Active bookings of one barber on a shop-local date, by start time."""
        query = (
            self._build_query()
            .options(selectinload(Booking.service_lines))
            .filter(
                Booking.tenant_id == tenant_id,
                Booking.barber_id == barber_id,
                Booking.booking_date == booking_date,
                Booking.status != BookingStatus.CANCELLED.value,
            )
            .order_by(Booking.start_time.asc())
        )
        return self._execute_query(query)

    def add_service_lines(
        self, booking: Booking, service_ids: Sequence[str]
    ) -> List[BookingServiceLine]:
        """Attach service lines in the given order. Does not commit."""
        lines = [
            BookingServiceLine(
                booking_id=booking.id,
                service_id=service_id,
                tenant_id=booking.tenant_id,
                position=position,
            )
            for position, service_id in enumerate(service_ids)
        ]
        try:
            booking.service_lines.extend(lines)
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error adding service lines to booking {booking.id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to add service lines: {str(e)}")
        return lines

    def replace_service_lines(
        self, booking: Booking, service_ids: Sequence[str]
    ) -> List[BookingServiceLine]:
        """Replace a booking's service lines with the given services."""
        try:
            booking.service_lines.clear()
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error clearing service lines of booking {booking.id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to replace service lines: {str(e)}")
        return self.add_service_lines(booking, service_ids)
