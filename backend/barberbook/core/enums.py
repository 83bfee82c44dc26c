# backend/barberbook/core/enums.py
"""
Core enums for the booking engine.

Role names arrive from the upstream identity layer as plain strings; these
enums give them stable values inside the service layer.
"""

from enum import Enum


class RoleName(str, Enum):
    """
    Actor roles supplied with every request.

    Roles not listed here are treated as ordinary users whose relationship to
    a booking decides what they may do.
    """

    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    BARBER = "barber"
    CUSTOMER = "customer"


class StaffRole(str, Enum):
    """Roles a shop staff member can hold in the staff directory."""

    BARBER = "barber"
    MANAGER = "manager"
    RECEPTIONIST = "receptionist"


class ActorClass(str, Enum):
    """
    Relationship of the requester to a specific booking.

    Resolved once per call and used as the key into the status transition table.
    """

    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"
    GUEST = "guest"


class BookingErrorCode(str, Enum):
    """Machine-readable codes carried by booking domain errors."""

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    LEAD_TIME_VIOLATION = "LEAD_TIME_VIOLATION"
    PRICE_MISMATCH = "PRICE_MISMATCH"
    OUT_OF_HOURS = "OUT_OF_HOURS"
    CONFLICT = "CONFLICT"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    TOO_EARLY = "TOO_EARLY"
    NO_STAFF = "NO_STAFF"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ADMIN_ROLES = frozenset({RoleName.ADMIN.value, RoleName.SUPERVISOR.value})
