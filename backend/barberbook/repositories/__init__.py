# backend/barberbook/repositories/__init__.py
"""
Repository layer for the booking engine.

Repositories own all queries; services never touch the session directly
except to end a transaction.
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .catalog_repository import CatalogRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .staff_repository import StaffRepository
from .tenant_setting_repository import TenantSettingRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "CatalogRepository",
    "ConflictCheckerRepository",
    "RepositoryFactory",
    "StaffRepository",
    "TenantSettingRepository",
]
