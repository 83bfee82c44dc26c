# backend/barberbook/services/booking_status.py
"""
Booking status state machine.

Who may move a booking from one status to another is plain data: the
STATUS_TRANSITIONS table maps (actor class, current status) to the set of
statuses that actor may request. Admins may set any status from any status.
Time-gated guards apply on top of the table for every actor:

- no_show requires the scheduled start plus the grace period to have passed
- completed requires the scheduled end to have passed and a barber assigned

Everything here is pure; the booking service supplies the clock, the grace
period and the resolved actor class.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from ..core.enums import ADMIN_ROLES, ActorClass, BookingErrorCode
from ..core.exceptions import (
    DomainException,
    ForbiddenException,
    NoStaffException,
    TooEarlyException,
    UnauthorizedException,
)
from ..models.booking import TERMINAL_STATUSES, BookingStatus
from ..schemas.booking import SCHEDULE_FIELDS, BookingActor
from .timezone_service import TimezoneService

ALL_STATUSES: FrozenSet[BookingStatus] = frozenset(BookingStatus)

STATUS_TRANSITIONS: Mapping[Tuple[ActorClass, BookingStatus], FrozenSet[BookingStatus]] = {
    (ActorClass.STAFF, BookingStatus.PENDING): frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    (ActorClass.STAFF, BookingStatus.CONFIRMED): frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW}
    ),
    (ActorClass.CUSTOMER, BookingStatus.PENDING): frozenset({BookingStatus.CANCELLED}),
}

_EXCEPTIONS: Dict[BookingErrorCode, Callable[..., DomainException]] = {
    BookingErrorCode.UNAUTHORIZED: UnauthorizedException,
    BookingErrorCode.FORBIDDEN: ForbiddenException,
    BookingErrorCode.TOO_EARLY: TooEarlyException,
    BookingErrorCode.NO_STAFF: NoStaffException,
}


def allowed_next_statuses(
    actor_class: ActorClass, current: BookingStatus
) -> FrozenSet[BookingStatus]:
    if actor_class is ActorClass.ADMIN:
        return ALL_STATUSES
    return STATUS_TRANSITIONS.get((actor_class, current), frozenset())


def resolve_actor_class(
    actor: Optional[BookingActor],
    customer_id: str,
    is_shop_staff: Callable[[str], bool],
) -> ActorClass:
    """
    Resolve the requester's relationship to a booking.

    Order: admin role, then the booking's own customer, then active staff
    of the booking's shop. Anyone else, including an anonymous actor, is a
    guest. ``is_shop_staff`` is only called when needed.
    """
    if actor is None:
        return ActorClass.GUEST
    if (actor.role or "").lower() in ADMIN_ROLES:
        return ActorClass.ADMIN
    if not actor.id:
        return ActorClass.GUEST
    if actor.id == customer_id:
        return ActorClass.CUSTOMER
    if is_shop_staff(actor.id):
        return ActorClass.STAFF
    return ActorClass.GUEST


@dataclass(frozen=True)
class TransitionDecision:
    allowed: bool
    code: Optional[BookingErrorCode] = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls) -> "TransitionDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, code: BookingErrorCode, message: str, **details: Any) -> "TransitionDecision":
        return cls(allowed=False, code=code, message=message, details=details)

    def raise_for_denial(self) -> None:
        if self.allowed:
            return
        raise _EXCEPTIONS[self.code](self.message, details=self.details)


def authorize_patch(
    actor_class: ActorClass,
    provided_fields: FrozenSet[str],
    requested_status: Optional[BookingStatus],
) -> TransitionDecision:
    """
    Field-level authorization, independent of the current status.

    Guests may change nothing. Customers may only edit notes and cancel.
    """
    if actor_class is ActorClass.GUEST:
        return TransitionDecision.deny(
            BookingErrorCode.UNAUTHORIZED, "You are not allowed to modify this booking"
        )
    if actor_class is ActorClass.CUSTOMER:
        touched = sorted(provided_fields & SCHEDULE_FIELDS)
        if touched:
            return TransitionDecision.deny(
                BookingErrorCode.FORBIDDEN,
                "Customers cannot change the schedule of a booking",
                fields=touched,
            )
        if requested_status is not None and requested_status is not BookingStatus.CANCELLED:
            return TransitionDecision.deny(
                BookingErrorCode.FORBIDDEN,
                "Customers can only cancel a booking",
                requested_status=requested_status.value,
            )
    return TransitionDecision.allow()


def evaluate_transition(
    current: BookingStatus,
    requested: BookingStatus,
    actor_class: ActorClass,
    *,
    scheduled_start: datetime,
    scheduled_end: datetime,
    now: datetime,
    grace_minutes: int,
    barber_id: Optional[str],
) -> TransitionDecision:
    """
    Decide whether ``actor_class`` may move a booking from current to requested.

    Args:
        current: Status stored on the booking
        requested: Status asked for
        actor_class: Resolved relationship of the requester
        scheduled_start: UTC start of the (possibly rescheduled) booking
        scheduled_end: UTC end of the (possibly rescheduled) booking
        now: Current UTC time
        grace_minutes: Minutes after start before no_show is allowed
        barber_id: Barber the booking will have after the update

    Returns:
        TransitionDecision naming the violated rule when denied
    """
    if actor_class is ActorClass.GUEST:
        return TransitionDecision.deny(
            BookingErrorCode.UNAUTHORIZED, "You are not allowed to change this booking's status"
        )

    if actor_class is not ActorClass.ADMIN:
        if current in TERMINAL_STATUSES:
            return TransitionDecision.deny(
                BookingErrorCode.FORBIDDEN,
                f"Booking is already {current.value} and can no longer change status",
                from_status=current.value,
                to_status=requested.value,
            )
        if requested not in allowed_next_statuses(actor_class, current):
            return TransitionDecision.deny(
                BookingErrorCode.FORBIDDEN,
                f"Cannot change status from {current.value} to {requested.value}",
                from_status=current.value,
                to_status=requested.value,
            )

    if requested is BookingStatus.COMPLETED and not barber_id:
        return TransitionDecision.deny(
            BookingErrorCode.NO_STAFF, "A booking without a barber cannot be completed"
        )

    now = TimezoneService.ensure_utc(now)
    if requested is BookingStatus.NO_SHOW:
        allowed_from = TimezoneService.ensure_utc(scheduled_start) + timedelta(minutes=grace_minutes)
        if now < allowed_from:
            return TransitionDecision.deny(
                BookingErrorCode.TOO_EARLY,
                f"No-show can be recorded {grace_minutes} minutes after the scheduled start",
                allowed_from=allowed_from.isoformat(),
            )

    if requested is BookingStatus.COMPLETED:
        end = TimezoneService.ensure_utc(scheduled_end)
        if now < end:
            return TransitionDecision.deny(
                BookingErrorCode.TOO_EARLY,
                "A booking can only be completed after its scheduled end",
                allowed_from=end.isoformat(),
            )

    return TransitionDecision.allow()
