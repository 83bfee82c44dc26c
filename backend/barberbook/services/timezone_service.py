"""
Centralized timezone handling for the booking engine.

Rules:
- Bookings are scheduled in the shop's local wall-clock time
- Weekday and working hours use the shop-local calendar date
- All storage of instants: UTC
- All comparisons against "now": UTC
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

from ..core.config import settings


class TimezoneService:
    """Handles all timezone conversions consistently."""

    @staticmethod
    def get_timezone(tz_str: Optional[str]) -> pytz.BaseTzInfo:
        """Get timezone object, with fallback to the configured default."""
        try:
            return pytz.timezone(tz_str or settings.default_shop_timezone)
        except pytz.UnknownTimeZoneError:
            return pytz.timezone(settings.default_shop_timezone)

    @staticmethod
    def local_to_utc(booking_date: date, start_time: time, timezone_str: Optional[str]) -> datetime:
        """
        Convert a shop-local date/time to UTC.

        Uses the timezone rules valid on the booking_date (not today).

        Raises:
            ValueError: If the time doesn't exist (DST spring-forward gap)
        """
        tz = TimezoneService.get_timezone(timezone_str)
        naive_dt = datetime.combine(booking_date, start_time)

        try:
            # is_dst=None raises exception for ambiguous/nonexistent times
            local_dt = tz.localize(naive_dt, is_dst=None)
        except pytz.exceptions.AmbiguousTimeError:
            # Fall back (time exists twice) - use first occurrence
            local_dt = tz.localize(naive_dt, is_dst=True)
        except pytz.exceptions.NonExistentTimeError:
            raise ValueError(
                f"The time {start_time.strftime('%H:%M')} does not exist on "
                f"{booking_date} in {timezone_str} due to Daylight Saving Time. "
                f"Please select a different time."
            )

        return local_dt.astimezone(timezone.utc)

    @staticmethod
    def minutes_until(target: datetime, now: datetime) -> float:
        """Signed minutes from now until target (negative when target is past)."""
        return (TimezoneService.ensure_utc(target) - TimezoneService.ensure_utc(now)) / timedelta(
            minutes=1
        )

    @staticmethod
    def ensure_utc(value: datetime) -> datetime:
        """Treat naive datetimes as UTC (SQLite drops tzinfo on read)."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
