# backend/barberbook/api/dependencies/services.py
"""
Service layer dependencies.

Services are created per request around the request's database session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.booking_service import BookingService
from .database import get_db


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """
    Get booking service instance with all dependencies.

    Args:
        db: Database session

    Returns:
        BookingService wired with the default repositories and config provider
    """
    return BookingService(db)
