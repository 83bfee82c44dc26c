# backend/barberbook/repositories/catalog_repository.py
"""
Catalog Repository for the booking engine.

Read-only access to shops, their catalog services and working hours.
"""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from ..models.service_catalog import Service
from ..models.shop import Shop, WorkingHours
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CatalogRepository(BaseRepository[Service]):
    def __init__(self, db: Session):
        super().__init__(db, Service)

    def get_services(
        self,
        tenant_id: str,
        shop_id: str,
        service_ids: Sequence[str],
        active_only: bool = True,
    ) -> List[Service]:
        """Return the services of a shop among the requested ids."""
        if not service_ids:
            return []
        query = self._build_query().filter(
            Service.tenant_id == tenant_id,
            Service.shop_id == shop_id,
            Service.id.in_(list(service_ids)),
        )
        if active_only:
            query = query.filter(Service.is_active.is_(True))
        return self._execute_query(query)

    def get_shop(self, tenant_id: str, shop_id: str) -> Optional[Shop]:
        query = self.db.query(Shop).filter(Shop.id == shop_id, Shop.tenant_id == tenant_id)
        return self._execute_first(query)

    def get_working_hours(self, shop_id: str, weekday: int) -> List[WorkingHours]:
        """Opening windows of a shop for a weekday (0=Sunday)."""
        query = (
            self.db.query(WorkingHours)
            .filter(WorkingHours.shop_id == shop_id, WorkingHours.weekday == weekday)
            .order_by(WorkingHours.open_minutes)
        )
        return self._execute_query(query)
