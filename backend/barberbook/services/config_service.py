"""Tenant configuration provider for booking rules.

Each key has an explicit default in ``constants.booking_defaults``; a
missing or unusable value falls back to that default. Services receive
this provider by injection so tests can hand in deterministic values.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from ..constants.booking_defaults import (
    BOOKING_SETTING_DEFAULTS,
    MIN_LEAD_MINUTES_KEY,
    PRICING_RULES_KEY,
    STATUS_GRACE_MINUTES_KEY,
)
from ..repositories.factory import RepositoryFactory
from ..schemas.pricing_rules import PricingRules
from .base import BaseService

logger = logging.getLogger(__name__)


def _extract_number(raw: Any) -> Optional[float]:
    """Accept a raw number or an object of the form {"value": n}."""
    if isinstance(raw, dict):
        raw = raw.get("value")
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if not math.isfinite(raw):
        return None
    return raw


class TenantConfigService(BaseService):
    """Business logic for reading/writing tenant booking settings."""

    def __init__(self, db: Session) -> None:
        super().__init__(db)
        self.repo = RepositoryFactory.create_tenant_setting_repository(db)

    def get_raw(self, tenant_id: str, key: str) -> Any:
        record = self.repo.get_by_key(tenant_id, key)
        if record is None or record.value_json is None:
            return BOOKING_SETTING_DEFAULTS.get(key)
        return record.value_json

    def _get_int(self, tenant_id: str, key: str, accept: Callable[[float], bool]) -> int:
        default = int(BOOKING_SETTING_DEFAULTS[key])
        record = self.repo.get_by_key(tenant_id, key)
        if record is None:
            return default
        candidate = _extract_number(record.value_json)
        if candidate is None or not accept(candidate):
            self.logger.warning(
                f"Ignoring invalid value for {key} of tenant {tenant_id}: {record.value_json!r}"
            )
            return default
        return math.floor(candidate)

    def get_min_lead_minutes(self, tenant_id: str) -> int:
        return self._get_int(tenant_id, MIN_LEAD_MINUTES_KEY, lambda v: v > 0)

    def get_status_grace_minutes(self, tenant_id: str) -> int:
        return self._get_int(tenant_id, STATUS_GRACE_MINUTES_KEY, lambda v: v >= 0)

    def get_pricing_rules(self, tenant_id: str) -> Optional[PricingRules]:
        """
        Return the tenant's pricing rules, or None for identity pricing.

        Raises:
            pydantic.ValidationError: If the stored document is malformed
        """
        raw = self.get_raw(tenant_id, PRICING_RULES_KEY)
        if not isinstance(raw, dict):
            return None
        return PricingRules.model_validate(raw)

    def set_setting(self, tenant_id: str, key: str, value: Any) -> Any:
        """Upsert a tenant setting and commit."""
        if key == PRICING_RULES_KEY and value is not None:
            value = PricingRules.model_validate(value).model_dump(
                mode="json", by_alias=True, exclude_none=True
            )
        with self.transaction():
            record = self.repo.upsert(tenant_id=tenant_id, key=key, value=value)
        self.log_operation("set_tenant_setting", tenant_id=tenant_id, key=key)
        return record.value_json
