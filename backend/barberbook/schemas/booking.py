# backend/barberbook/schemas/booking.py
"""
Booking request and response schemas.

Requests are validated strictly here so the service layer can rely on
well-formed "HH:mm" times, non-empty unique service lists and non-negative
prices.
"""

from datetime import date, datetime
from decimal import Decimal
import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.booking import BookingStatus
from ._strict_base import StrictModel, StrictRequestModel
from .pricing_rules import PricingContext

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

SCHEDULE_FIELDS = frozenset({"barber_id", "booking_date", "start_time", "service_ids"})


def _validate_hhmm(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not _HHMM.match(value):
        raise ValueError(f"Invalid time format: {value}. Expected HH:MM format.")
    return value


def _validate_service_ids(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    if not value:
        raise ValueError("At least one service is required")
    if len(set(value)) != len(value):
        raise ValueError("Service ids must be unique")
    return value


class BookingCreate(StrictRequestModel):
    """Create a booking for a customer at a shop."""

    customer_id: str = Field(..., min_length=1, description="Customer the booking is for")
    shop_id: str = Field(..., min_length=1)
    barber_id: Optional[str] = Field(
        None, description="Requested barber; omitted means auto-assign"
    )
    booking_date: date = Field(..., description="Shop-local calendar date")
    start_time: str = Field(..., description="Shop-local start time HH:MM")
    service_ids: List[str] = Field(..., description="Catalog services, in display order")
    notes: Optional[str] = Field(None, max_length=1000)
    total_price: Optional[Decimal] = Field(
        None, ge=0, description="Client-asserted total; must match the computed price"
    )
    pricing_context: Optional[PricingContext] = None

    @field_validator("start_time")
    @classmethod
    def _check_start_time(cls, v: str) -> str:
        return _validate_hhmm(v)

    @field_validator("service_ids")
    @classmethod
    def _check_service_ids(cls, v: List[str]) -> List[str]:
        return _validate_service_ids(v)


class BookingUpdate(StrictRequestModel):
    """
    Partial update of a booking.

    Only fields present in the request are applied. ``barber_id`` may be sent
    as null to unassign a booking.
    """

    barber_id: Optional[str] = None
    booking_date: Optional[date] = None
    start_time: Optional[str] = None
    service_ids: Optional[List[str]] = None
    status: Optional[BookingStatus] = None
    notes: Optional[str] = Field(None, max_length=1000)
    total_price: Optional[Decimal] = Field(None, ge=0)
    pricing_context: Optional[PricingContext] = None

    @field_validator("start_time")
    @classmethod
    def _check_start_time(cls, v: Optional[str]) -> Optional[str]:
        return _validate_hhmm(v)

    @field_validator("service_ids")
    @classmethod
    def _check_service_ids(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _validate_service_ids(v)

    @property
    def provided_fields(self) -> frozenset:
        return frozenset(self.model_fields_set)


class BookingQuery(StrictRequestModel):
    """Filters and paging for listing a tenant's bookings."""

    customer_id: Optional[str] = None
    barber_id: Optional[str] = None
    shop_id: Optional[str] = None
    status: Optional[BookingStatus] = None
    booking_date: Optional[date] = None
    page: int = Field(1, ge=1)
    per_page: int = Field(10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


class BookingActor(BaseModel):
    """Identity of the requester as supplied by the identity layer."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    role: Optional[str] = None


class BookingResponse(StrictModel):
    id: str
    tenant_id: str
    shop_id: str
    customer_id: str
    barber_id: Optional[str] = None
    booking_date: date
    start_time: str
    end_time: str
    start_at: datetime
    end_at: datetime
    status: BookingStatus
    total_price: Decimal
    notes: Optional[str] = None
    service_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Any) -> "BookingResponse":
        return cls(
            id=booking.id,
            tenant_id=booking.tenant_id,
            shop_id=booking.shop_id,
            customer_id=booking.customer_id,
            barber_id=booking.barber_id,
            booking_date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            start_at=booking.start_at,
            end_at=booking.end_at,
            status=BookingStatus(booking.status),
            total_price=booking.total_price,
            notes=booking.notes,
            service_ids=list(booking.service_ids),
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )
