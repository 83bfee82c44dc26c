# backend/barberbook/utils/time_utils.py
"""
Wall-clock helpers for "HH:mm" strings.

Bookings store shop-local times as zero-padded "HH:mm" strings. Parsing is
lenient: format validation happens at the schema layer, so a non-numeric
part simply counts as zero here.
"""

import re
from datetime import time
from typing import Iterable, Optional

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _lenient_int(part: str) -> int:
    match = _LEADING_INT.match(part or "")
    return int(match.group(1)) if match else 0


def to_minutes(hhmm: str) -> int:
    """Convert "HH:mm" into minutes since midnight."""
    parts = (hhmm or "").split(":")
    hours = _lenient_int(parts[0]) if parts else 0
    minutes = _lenient_int(parts[1]) if len(parts) > 1 else 0
    return hours * 60 + minutes


def from_minutes(total_minutes: int) -> str:
    """Convert minutes since midnight into a zero-padded "HH:mm" string."""
    hours, minutes = divmod(int(total_minutes), 60)
    return f"{hours:02d}:{minutes:02d}"


def compute_end_time(start_time: str, durations: Iterable[Optional[int]]) -> str:
    """
    Add the summed durations to a start time.

    Missing durations count as zero, and an empty list yields the start time.
    """
    total = sum(int(d or 0) for d in durations)
    return from_minutes(to_minutes(start_time) + total)


def to_time(hhmm: str) -> time:
    """Convert "HH:mm" into a ``datetime.time`` (must fall within the day)."""
    hours, minutes = divmod(to_minutes(hhmm), 60)
    return time(hour=hours, minute=minutes)
