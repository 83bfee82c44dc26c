"""
In-process publisher for booking facts.

Notification, payment and audit sinks subscribe here. Delivery is
fire-and-forget: a failing listener is logged and never affects the
booking operation that emitted the fact.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Sequence

logger = logging.getLogger(__name__)

BookingEventListener = Callable[[Any], None]


class BookingEventPublisher:
    """Registry of booking event listeners."""

    def __init__(self) -> None:
        self._listeners: List[BookingEventListener] = []

    def register(self, listener: BookingEventListener) -> None:
        self._listeners.append(listener)

    def unregister(self, listener: BookingEventListener) -> None:
        self._listeners = [existing for existing in self._listeners if existing != listener]

    def listeners(self) -> Sequence[BookingEventListener]:
        return tuple(self._listeners)

    def publish(self, event: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Booking event listener error: %s", listener)
        logger.info("booking_event=%s payload=%s", event.__class__.__name__, event.to_dict())


# Process-wide publisher used when a service is not given one
booking_event_publisher = BookingEventPublisher()
