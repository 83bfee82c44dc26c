# backend/barberbook/api/dependencies/identity.py
"""
Request identity dependencies.

Authentication happens upstream; the gateway forwards the tenant and the
authenticated actor as headers. A missing actor is treated as a guest by
the booking services, a missing tenant is rejected here.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from ...schemas.booking import BookingActor


def get_tenant_id(x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-ID")) -> str:
    tenant_id = (x_tenant_id or "").strip()
    if not tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "X-Tenant-ID header is required", "code": "VALIDATION", "details": {}},
        )
    return tenant_id


def get_current_actor(
    x_actor_id: Optional[str] = Header(None, alias="X-Actor-ID"),
    x_actor_role: Optional[str] = Header(None, alias="X-Actor-Role"),
) -> Optional[BookingActor]:
    """Return the forwarded actor, or None for anonymous requests."""
    actor_id = (x_actor_id or "").strip() or None
    role = (x_actor_role or "").strip().lower() or None
    if actor_id is None and role is None:
        return None
    return BookingActor(id=actor_id, role=role)
