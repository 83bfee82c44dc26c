# backend/barberbook/routes/bookings.py
"""
Booking routes for the booking engine.

Thin HTTP layer over BookingService. Tenant and actor come from gateway
headers; every rule lives in the service layer.

Router Endpoints:
    POST / - Create a booking
    GET / - Paginated booking list (customer, barber, shop, status, date filters)
    GET /barber/{barber_id}/date/{booking_date} - A barber's day schedule
    GET /{booking_id} - Booking details
    PATCH /{booking_id} - Partial update, including status changes
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..api.dependencies import get_booking_service, get_current_actor, get_tenant_id
from ..core.exceptions import DomainException
from ..models.booking import BookingStatus
from ..schemas.base_responses import PaginatedResponse
from ..schemas.booking import (
    BookingActor,
    BookingCreate,
    BookingQuery,
    BookingResponse,
    BookingUpdate,
)
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def handle_domain_exception(exc: DomainException):
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_data: BookingCreate,
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
):
    """
    Create a booking.

    Without barber_id the first free barber of the shop is assigned; if none
    is free the booking is stored unassigned.
    """
    try:
        booking = booking_service.create_booking(tenant_id, booking_data)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/", response_model=PaginatedResponse[BookingResponse])
def list_bookings(
    customer_id: Optional[str] = Query(None),
    barber_id: Optional[str] = Query(None),
    shop_id: Optional[str] = Query(None),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    booking_date: Optional[date] = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    tenant_id: str = Depends(get_tenant_id),
    actor: Optional[BookingActor] = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    """
    List the tenant's bookings, newest first.

    Customers are limited to their own bookings.
    """
    try:
        query = BookingQuery(
            customer_id=customer_id,
            barber_id=barber_id,
            shop_id=shop_id,
            status=status_filter,
            booking_date=booking_date,
            page=page,
            per_page=per_page,
        )
        bookings, total = booking_service.list_bookings(tenant_id, query, actor)
        return PaginatedResponse[BookingResponse](
            items=[BookingResponse.from_booking(b) for b in bookings],
            total=total,
            page=page,
            per_page=per_page,
            has_next=page * per_page < total,
            has_prev=page > 1,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/barber/{barber_id}/date/{booking_date}", response_model=List[BookingResponse])
def get_barber_schedule(
    barber_id: str,
    booking_date: date,
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Active bookings of one barber on a shop-local date, by start time."""
    try:
        bookings = booking_service.get_barber_schedule(tenant_id, barber_id, booking_date)
        return [BookingResponse.from_booking(b) for b in bookings]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking_details(
    booking_id: str,
    tenant_id: str = Depends(get_tenant_id),
    booking_service: BookingService = Depends(get_booking_service),
):
    try:
        booking = booking_service.get_booking(booking_id, tenant_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: str,
    update_data: BookingUpdate,
    tenant_id: str = Depends(get_tenant_id),
    actor: Optional[BookingActor] = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Update schedule, services, notes or status of a booking."""
    try:
        booking = booking_service.update_booking(booking_id, tenant_id, actor, update_data)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)
