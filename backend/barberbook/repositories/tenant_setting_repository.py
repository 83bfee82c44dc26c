"""Repository for tenant-scoped setting records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, cast

from sqlalchemy.orm import Session

from ..models.tenant_setting import TenantSetting


class TenantSettingRepository:
    """Data access helper for tenant key/value settings."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_key(self, tenant_id: str, key: str) -> Optional[TenantSetting]:
        result = (
            self.db.query(TenantSetting)
            .filter(TenantSetting.tenant_id == tenant_id, TenantSetting.key == key)
            .first()
        )
        return cast(Optional[TenantSetting], result)

    def upsert(self, *, tenant_id: str, key: str, value: Any) -> TenantSetting:
        now = datetime.now(timezone.utc)
        record = self.get_by_key(tenant_id, key)
        if record is None:
            record = TenantSetting(tenant_id=tenant_id, key=key, value_json=value, updated_at=now)
            self.db.add(record)
        else:
            record.value_json = value
            record.updated_at = now
        self.db.flush()
        return record


__all__ = ["TenantSettingRepository"]
