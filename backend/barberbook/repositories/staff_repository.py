# backend/barberbook/repositories/staff_repository.py
"""
Staff Repository for the booking engine.

Reads the shop staff directory for auto-assignment and staff membership
checks. Barbers are enumerated by membership id ascending so that
auto-assignment is reproducible.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from ..core.enums import StaffRole
from ..models.shop import ShopStaff
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class StaffRepository(BaseRepository[ShopStaff]):
    def __init__(self, db: Session):
        super().__init__(db, ShopStaff)

    def get_active_barbers(self, tenant_id: str, shop_id: str) -> List[ShopStaff]:
        query = (
            self._build_query()
            .filter(
                ShopStaff.tenant_id == tenant_id,
                ShopStaff.shop_id == shop_id,
                ShopStaff.role == StaffRole.BARBER.value,
                ShopStaff.is_active.is_(True),
            )
            .order_by(ShopStaff.id.asc())
        )
        return self._execute_query(query)

    def is_active_staff(self, tenant_id: str, shop_id: str, user_id: str) -> bool:
        """Whether the user holds an active membership of any role in the shop."""
        query = self._build_query().filter(
            ShopStaff.tenant_id == tenant_id,
            ShopStaff.shop_id == shop_id,
            ShopStaff.user_id == user_id,
            ShopStaff.is_active.is_(True),
        )
        return self._execute_first(query) is not None
