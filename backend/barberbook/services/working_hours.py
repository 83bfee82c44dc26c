# backend/barberbook/services/working_hours.py
"""
Working-hours validation.

A shop may define zero or more opening windows per weekday. An interval is
admissible when any window is flagged open 24h, or when at least one
window fully contains it. A weekday without rows uses the default
09:00-18:00 window. Bookings never run past midnight of their own date,
not even in a 24h shop; ending exactly at midnight is stored as "24:00".
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ..constants.booking_defaults import (
    DEFAULT_CLOSE_MINUTES,
    DEFAULT_OPEN_MINUTES,
    MINUTES_PER_DAY,
)
from ..core.exceptions import OutOfHoursException
from ..repositories.catalog_repository import CatalogRepository
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import from_minutes
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpeningWindow:
    open_minutes: Optional[int] = None
    close_minutes: Optional[int] = None
    open_24h: bool = False

    @classmethod
    def from_row(cls, row) -> "OpeningWindow":
        return cls(
            open_minutes=row.open_minutes,
            close_minutes=row.close_minutes,
            open_24h=bool(row.open_24h),
        )


DEFAULT_WINDOW = OpeningWindow(open_minutes=DEFAULT_OPEN_MINUTES, close_minutes=DEFAULT_CLOSE_MINUTES)


def weekday_index(booking_date: date) -> int:
    """Weekday of a shop-local date, 0=Sunday .. 6=Saturday."""
    return booking_date.isoweekday() % 7


def window_contains(window: OpeningWindow, start_min: int, end_min: int) -> bool:
    if window.open_24h:
        return True
    open_min = DEFAULT_OPEN_MINUTES if window.open_minutes is None else window.open_minutes
    close_min = DEFAULT_CLOSE_MINUTES if window.close_minutes is None else window.close_minutes
    return start_min >= open_min and end_min <= close_min


def is_within_working_hours(
    start_min: int, end_min: int, windows: Sequence[OpeningWindow]
) -> bool:
    """Decide admissibility of [start_min, end_min) against a weekday's windows."""
    if end_min > MINUTES_PER_DAY:
        return False
    if not windows:
        return window_contains(DEFAULT_WINDOW, start_min, end_min)
    if any(window.open_24h for window in windows):
        return True
    return any(window_contains(window, start_min, end_min) for window in windows)


class WorkingHoursValidator(BaseService):
    """Validates booking intervals against a shop's opening windows."""

    def __init__(self, db: Session, catalog_repository: Optional[CatalogRepository] = None):
        super().__init__(db)
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )

    def get_windows(self, shop_id: str, booking_date: date) -> list[OpeningWindow]:
        rows = self.catalog_repository.get_working_hours(shop_id, weekday_index(booking_date))
        return [OpeningWindow.from_row(row) for row in rows]

    def is_admissible(self, shop_id: str, booking_date: date, start_min: int, end_min: int) -> bool:
        return is_within_working_hours(start_min, end_min, self.get_windows(shop_id, booking_date))

    @BaseService.measure_operation("validate_working_hours")
    def validate(self, shop_id: str, booking_date: date, start_min: int, end_min: int) -> None:
        """
        Raise OutOfHoursException when the interval is not admissible.

        Args:
            shop_id: Shop whose hours apply
            booking_date: Shop-local calendar date (decides the weekday)
            start_min: Interval start in minutes since midnight
            end_min: Interval end in minutes since midnight
        """
        if not self.is_admissible(shop_id, booking_date, start_min, end_min):
            self.logger.info(
                f"Booking at shop {shop_id} on {booking_date} "
                f"{from_minutes(start_min)}-{from_minutes(end_min)} is outside working hours"
            )
            raise OutOfHoursException(booking_date, from_minutes(start_min), from_minutes(end_min))
