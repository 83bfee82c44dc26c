# backend/barberbook/models/shop.py
"""
Shop, staff directory and working-hours models.

These tables are owned by the catalog side of the platform. The booking
engine only reads them: shop timezone for schedule instants, active
barbers for auto-assignment and staff membership for authorization, and
per-weekday opening windows for the working-hours check.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class Shop(Base):
    __tablename__ = "shops"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(26), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    timezone = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    staff = relationship("ShopStaff", back_populates="shop", order_by="ShopStaff.id")
    working_hours = relationship("WorkingHours", back_populates="shop")

    def __repr__(self) -> str:
        return f"<Shop {self.id}: {self.name}>"


class ShopStaff(Base):
    """
    Staff membership of a user in a shop.

    Bookings reference the membership id (not the user id) as barber_id.
    """

    __tablename__ = "shop_staff"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(26), nullable=False, index=True)
    shop_id = Column(String(26), ForeignKey("shops.id"), nullable=False)
    user_id = Column(String(26), nullable=False, index=True)
    role = Column(String(32), nullable=False, default="barber")
    is_active = Column(Boolean, nullable=False, default=True)

    shop = relationship("Shop", back_populates="staff")

    __table_args__ = (Index("ix_shop_staff_shop_role", "tenant_id", "shop_id", "role"),)

    def __repr__(self) -> str:
        return f"<ShopStaff {self.id}: user={self.user_id} role={self.role}>"


class WorkingHours(Base):
    """
    Opening window of a shop on one weekday.

    Weekday follows 0=Sunday .. 6=Saturday. A shop may have several windows
    per weekday to model split shifts.
    """

    __tablename__ = "shop_working_hours"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    shop_id = Column(String(26), ForeignKey("shops.id"), nullable=False, index=True)
    weekday = Column(Integer, nullable=False)
    open_minutes = Column(Integer, nullable=True)
    close_minutes = Column(Integer, nullable=True)
    open_24h = Column(Boolean, nullable=False, default=False)

    shop = relationship("Shop", back_populates="working_hours")

    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_working_hours_weekday"),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkingHours shop={self.shop_id} weekday={self.weekday} "
            f"{self.open_minutes}-{self.close_minutes} 24h={self.open_24h}>"
        )
