# backend/barberbook/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .database import get_db
from .identity import get_current_actor, get_tenant_id
from .services import get_booking_service

__all__ = [
    # Database
    "get_db",
    # Identity
    "get_tenant_id",
    "get_current_actor",
    # Services
    "get_booking_service",
]
