# backend/barberbook/models/booking.py
"""
Booking model for the booking engine.

A booking reserves a shop-local wall-clock interval on a calendar date,
optionally with a specific barber. Wall-clock times are stored as "HH:mm"
strings next to the absolute UTC instants derived from them, so overlap
checks can run on either representation.

Service lines record which catalog services compose the booking. Duration
and price are looked up from the catalog whenever the booking is priced.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
import os
from typing import Any

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)

IS_SQLITE = os.getenv("DB_DIALECT", "").lower().startswith("sqlite")

# Constraint names the service layer recognises as booking overlaps
BARBER_OVERLAP_CONSTRAINT = "bookings_no_overlap_per_barber"
GENERAL_OVERLAP_CONSTRAINT = "bookings_no_overlap_general"
TIME_ORDER_CONSTRAINT = "bookings_time_order"


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Default on creation
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


TERMINAL_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW}
)


class Booking(Base):
    """
    Booking of a customer at a shop, with or without an assigned barber.

    A null barber_id marks a general booking that only blocks other general
    bookings of the same shop and date.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    tenant_id = Column(String(26), nullable=False, index=True)
    shop_id = Column(String(26), ForeignKey("shops.id"), nullable=False)
    customer_id = Column(String(26), nullable=False, index=True)
    barber_id = Column(String(26), ForeignKey("shop_staff.id"), nullable=True)

    # Shop-local schedule
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    # Absolute instants derived from date, time and shop timezone
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    total_price = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=func.now(),
    )

    service_lines = relationship(
        "BookingServiceLine",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingServiceLine.position",
    )
    barber = relationship("ShopStaff", foreign_keys=[barber_id])

    _table_constraints = [
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show')",
            name="ck_bookings_status",
        ),
        CheckConstraint("total_price >= 0", name="check_price_non_negative"),
        CheckConstraint("start_time < end_time", name=TIME_ORDER_CONSTRAINT),
        Index("ix_bookings_barber_date", "tenant_id", "barber_id", "booking_date"),
        Index("ix_bookings_shop_date", "tenant_id", "shop_id", "booking_date"),
    ]

    if not IS_SQLITE:
        _table_constraints.append(CheckConstraint("start_at < end_at", name="check_instant_order"))

    __table_args__ = tuple(_table_constraints)

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING.value
        logger.info(
            f"Creating booking for customer {self.customer_id} at shop {self.shop_id} "
            f"with barber {self.barber_id or 'unassigned'}"
        )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: shop={self.shop_id}, barber={self.barber_id}, "
            f"date={self.booking_date}, time={self.start_time}-{self.end_time}, "
            f"status={self.status}>"
        )

    @property
    def service_ids(self) -> list[str]:
        return [line.service_id for line in self.service_lines]

    @property
    def duration_minutes(self) -> int:
        return int((self.end_at - self.start_at).total_seconds() // 60)


class BookingServiceLine(Base):
    """Catalog service that is part of a booking."""

    __tablename__ = "booking_services"

    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True
    )
    service_id = Column(String(26), ForeignKey("services.id"), primary_key=True)
    tenant_id = Column(String(26), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    booking = relationship("Booking", back_populates="service_lines")
    service = relationship("Service")

    def __repr__(self) -> str:
        return f"<BookingServiceLine booking={self.booking_id} service={self.service_id}>"


def _sqlite_overlap_trigger(constraint: str, operation: str, lane: str) -> str:
    self_exclusion = " AND b.id <> NEW.id" if operation == "UPDATE" else ""
    return f"""
        CREATE TRIGGER IF NOT EXISTS {constraint}_{operation.lower()}
        BEFORE {operation} ON bookings
        WHEN NEW.status <> 'cancelled' AND {lane.format(row="NEW")}
        BEGIN
            SELECT RAISE(ABORT, '{constraint}')
            WHERE EXISTS (
                SELECT 1 FROM bookings AS b
                WHERE b.tenant_id = NEW.tenant_id
                  AND b.status <> 'cancelled'
                  AND {lane.format(row="b")}
                  AND b.start_at < NEW.end_at
                  AND b.end_at > NEW.start_at{self_exclusion}
            );
        END
        """


_BARBER_LANE = "{row}.barber_id IS NOT NULL AND {row}.barber_id = NEW.barber_id"
_GENERAL_LANE = "{row}.barber_id IS NULL AND {row}.shop_id = NEW.shop_id"

# SQLite has no exclusion constraints; these triggers abort with the same
# names as the Postgres constraints so violations map to the same conflict.
SQLITE_OVERLAP_TRIGGERS = [
    _sqlite_overlap_trigger(constraint, operation, lane)
    for constraint, lane in (
        (BARBER_OVERLAP_CONSTRAINT, _BARBER_LANE),
        (GENERAL_OVERLAP_CONSTRAINT, _GENERAL_LANE),
    )
    for operation in ("INSERT", "UPDATE")
]

for _statement in SQLITE_OVERLAP_TRIGGERS:
    event.listen(Booking.__table__, "after_create", DDL(_statement).execute_if(dialect="sqlite"))
