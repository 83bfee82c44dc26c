# backend/barberbook/repositories/factory.py
"""
Repository Factory for the booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .catalog_repository import CatalogRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .staff_repository import StaffRepository
    from .tenant_setting_repository import TenantSettingRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services can accept overrides in tests.
    """

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking ledger operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for booking overlap queries."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_catalog_repository(db: Session) -> "CatalogRepository":
        """Create repository for services, shops and working hours."""
        from .catalog_repository import CatalogRepository

        return CatalogRepository(db)

    @staticmethod
    def create_staff_repository(db: Session) -> "StaffRepository":
        """Create repository for the shop staff directory."""
        from .staff_repository import StaffRepository

        return StaffRepository(db)

    @staticmethod
    def create_tenant_setting_repository(db: Session) -> "TenantSettingRepository":
        """Create repository for tenant settings."""
        from .tenant_setting_repository import TenantSettingRepository

        return TenantSettingRepository(db)
