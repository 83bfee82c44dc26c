"""Booking domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class BookingCreated:
    """Fired after a booking is committed."""

    booking_id: str
    tenant_id: str
    shop_id: str
    customer_id: str
    barber_id: Optional[str]
    duration_minutes: int
    total_price: Decimal
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BookingStatusChanged:
    """Fired after an accepted status transition is committed."""

    booking_id: str
    tenant_id: str
    from_status: str
    to_status: str
    actor_class: str  # admin, staff, customer
    changed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
