# backend/barberbook/models/tenant_setting.py
"""Tenant-scoped key/value settings."""

from sqlalchemy import JSON, Column, DateTime, String, func

from ..database import Base


class TenantSetting(Base):
    __tablename__ = "tenant_settings"

    tenant_id = Column(String(26), primary_key=True)
    key = Column(String(100), primary_key=True)
    value_json = Column(JSON, nullable=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
