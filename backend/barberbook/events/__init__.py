"""Booking facts and the in-process publisher that delivers them."""

from .booking_events import BookingCreated, BookingStatusChanged
from .publisher import BookingEventPublisher, booking_event_publisher

__all__ = [
    "BookingCreated",
    "BookingEventPublisher",
    "BookingStatusChanged",
    "booking_event_publisher",
]
