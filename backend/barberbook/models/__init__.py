# backend/barberbook/models/__init__.py
"""
Models package for the booking engine.

Importing this package registers every table on Base.metadata.
"""

from .booking import Booking, BookingServiceLine, BookingStatus
from .service_catalog import Service
from .shop import Shop, ShopStaff, WorkingHours
from .tenant_setting import TenantSetting

__all__ = [
    "Booking",
    "BookingServiceLine",
    "BookingStatus",
    "Service",
    "Shop",
    "ShopStaff",
    "TenantSetting",
    "WorkingHours",
]
