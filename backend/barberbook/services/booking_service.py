# backend/barberbook/services/booking_service.py
"""
Booking Service for the booking engine.

Transactional entry points for creating and updating bookings. Each call
composes the smaller services in a fixed order:

create: services -> schedule -> lead time -> price -> working hours
        -> slot resolution -> persist (booking + service lines)
update: load -> actor class -> field authorization -> services -> schedule
        -> status transition -> lead time -> price -> working hours
        -> conflicts -> persist

Everything between loading and committing runs inside one database
transaction. Overlap constraint violations raised by the database at
flush or commit time surface as the same conflict error as the pre-check.
Facts (created, status changed, duration) are emitted only after commit
and can never fail the operation.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants.booking_defaults import PRICE_TOLERANCE
from ..core.enums import ActorClass, RoleName
from ..core.exceptions import (
    BookingConflictException,
    DomainException,
    LeadTimeViolationException,
    NotFoundException,
    PriceMismatchException,
    RepositoryException,
    ServiceException,
    ValidationException,
)
from ..events.booking_events import BookingCreated, BookingStatusChanged
from ..events.publisher import BookingEventPublisher, booking_event_publisher
from ..models.booking import (
    BARBER_OVERLAP_CONSTRAINT,
    GENERAL_OVERLAP_CONSTRAINT,
    TIME_ORDER_CONSTRAINT,
    Booking,
    BookingStatus,
)
from ..models.service_catalog import Service
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.catalog_repository import CatalogRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.staff_repository import StaffRepository
from ..schemas.booking import BookingActor, BookingCreate, BookingQuery, BookingUpdate
from ..schemas.pricing_rules import PricingContext
from ..utils.time_utils import from_minutes, to_minutes, to_time
from .base import BaseService
from .booking_status import authorize_patch, evaluate_transition, resolve_actor_class
from .config_service import TenantConfigService
from .conflict_checker import BARBER_CONFLICT_MESSAGE, ConflictChecker
from .pricing_service import PricingResult, PricingService
from .timezone_service import TimezoneService
from .working_hours import WorkingHoursValidator

logger = logging.getLogger(__name__)

GENERAL_CONFLICT_MESSAGE = "This time slot conflicts with an existing booking"
TIME_ORDER_MESSAGE = "Booking end time must be after its start time"

_CONFLICT_CONSTRAINTS = {
    BARBER_OVERLAP_CONSTRAINT: BARBER_CONFLICT_MESSAGE,
    GENERAL_OVERLAP_CONSTRAINT: GENERAL_CONFLICT_MESSAGE,
    TIME_ORDER_CONSTRAINT: TIME_ORDER_MESSAGE,
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BookingSchedule:
    """Resolved schedule of a booking candidate."""

    booking_date: date
    start_time: str
    end_time: str
    start_min: int
    end_min: int
    start_at: datetime
    end_at: datetime
    duration_minutes: int
    base_total: Decimal


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Collaborators are injectable so tests can replace the clock, the tenant
    configuration provider or any repository.
    """

    @staticmethod
    def _is_deadlock_error(exc: OperationalError) -> bool:
        orig = getattr(exc, "orig", None)
        pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if pgcode == "40P01":
            return True
        return "deadlock detected" in str(exc).lower()

    def __init__(
        self,
        db: Session,
        repository: Optional[BookingRepository] = None,
        catalog_repository: Optional[CatalogRepository] = None,
        staff_repository: Optional[StaffRepository] = None,
        config_service: Optional[TenantConfigService] = None,
        pricing_service: Optional[PricingService] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        working_hours_validator: Optional[WorkingHoursValidator] = None,
        event_publisher: Optional[BookingEventPublisher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )
        self.staff_repository = staff_repository or RepositoryFactory.create_staff_repository(db)
        self.config_service = config_service or TenantConfigService(db)
        self.pricing_service = pricing_service or PricingService(db, self.config_service)
        self.conflict_checker = conflict_checker or ConflictChecker(
            db, staff_repository=self.staff_repository
        )
        self.working_hours_validator = working_hours_validator or WorkingHoursValidator(
            db, self.catalog_repository
        )
        self.event_publisher = event_publisher or booking_event_publisher
        self.clock = clock or _utc_now

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, tenant_id: str) -> Booking:
        booking = self.repository.get_for_tenant(booking_id, tenant_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self, tenant_id: str, query: BookingQuery, actor: Optional[BookingActor] = None
    ) -> Tuple[List[Booking], int]:
        """
        List a tenant's bookings, newest first.

        Customers only ever see their own bookings, whatever customer_id
        filter they send.

        Returns:
            The requested page and the total number of matching bookings
        """
        customer_id = query.customer_id
        if actor and actor.id and (actor.role or "").lower() == RoleName.CUSTOMER.value:
            customer_id = actor.id

        bookings, total = self.repository.list_for_tenant(
            tenant_id,
            customer_id=customer_id,
            barber_id=query.barber_id,
            shop_id=query.shop_id,
            status=query.status.value if query.status else None,
            booking_date=query.booking_date,
            offset=query.offset,
            limit=query.per_page,
        )
        self._record_read("list")
        return bookings, total

    @BaseService.measure_operation("get_barber_schedule")
    def get_barber_schedule(
        self, tenant_id: str, barber_id: str, booking_date: date
    ) -> List[Booking]:
        """Active bookings of a barber on a shop-local date, ordered by start time."""
        bookings = self.repository.get_barber_day(tenant_id, barber_id, booking_date)
        self._record_read("list")
        return bookings

    @BaseService.measure_operation("create_booking")
    def create_booking(self, tenant_id: str, booking_data: BookingCreate) -> Booking:
        """
        Create a pending booking.

        Args:
            tenant_id: Tenant the booking belongs to
            booking_data: Validated creation request

        Returns:
            The committed booking with its service lines

        Raises:
            ValidationException: Unknown or inactive services, impossible local time
            LeadTimeViolationException: Start is in the future but too soon
            PriceMismatchException: Client-asserted total disagrees with the computed one
            OutOfHoursException: Interval outside the shop's working hours
            BookingConflictException: Slot already taken
        """
        self.log_operation(
            "create_booking",
            tenant_id=tenant_id,
            shop_id=booking_data.shop_id,
            customer_id=booking_data.customer_id,
            barber_id=booking_data.barber_id,
        )
        try:
            booking = self._run_in_transaction(
                lambda: self._create_booking_record(tenant_id, booking_data),
                conflict_details={
                    "shop_id": booking_data.shop_id,
                    "barber_id": booking_data.barber_id,
                    "booking_date": booking_data.booking_date.isoformat(),
                    "start_time": booking_data.start_time,
                },
            )
        except DomainException as exc:
            self._record_failure("create", exc)
            raise

        self._handle_post_create(booking)
        return booking

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self,
        booking_id: str,
        tenant_id: str,
        actor: Optional[BookingActor],
        patch: BookingUpdate,
    ) -> Booking:
        """
        Apply a partial update, including status transitions.

        The price and end time are recomputed from the (possibly new) service
        set on every update.

        Raises:
            NotFoundException: No such booking in the tenant
            UnauthorizedException: Requester has no relationship to the booking
            ForbiddenException: Field or transition not allowed for the requester
            TooEarlyException: Time-gated transition requested too soon
            NoStaffException: Completing a booking without a barber
            plus every rejection create_booking can raise
        """
        self.log_operation(
            "update_booking",
            tenant_id=tenant_id,
            booking_id=booking_id,
            actor_id=actor.id if actor else None,
            fields=sorted(patch.provided_fields),
        )
        transition: Dict[str, Any] = {}
        try:
            booking = self._run_in_transaction(
                lambda: self._update_booking_record(booking_id, tenant_id, actor, patch, transition),
                conflict_details={"booking_id": booking_id},
            )
        except DomainException as exc:
            self._record_failure("update", exc)
            raise

        self._handle_post_update(booking, transition)
        return booking

    # ------------------------------------------------------------------
    # Create / update internals
    # ------------------------------------------------------------------

    def _create_booking_record(self, tenant_id: str, data: BookingCreate) -> Booking:
        services = self._resolve_services(tenant_id, data.shop_id, data.service_ids)
        schedule = self._build_schedule(
            tenant_id, data.shop_id, data.booking_date, data.start_time, services
        )
        self._enforce_lead_time(tenant_id, schedule)
        pricing = self._price_booking(
            tenant_id, data.shop_id, schedule, data.pricing_context, data.total_price
        )
        self.working_hours_validator.validate(
            data.shop_id, schedule.booking_date, schedule.start_min, schedule.end_min
        )
        assignment = self.conflict_checker.resolve_slot(
            tenant_id,
            data.shop_id,
            schedule.booking_date,
            schedule.start_time,
            schedule.end_time,
            barber_id=data.barber_id,
        )

        booking = self.repository.create(
            tenant_id=tenant_id,
            shop_id=data.shop_id,
            customer_id=data.customer_id,
            barber_id=assignment.barber_id,
            booking_date=schedule.booking_date,
            start_time=schedule.start_time,
            end_time=schedule.end_time,
            start_at=schedule.start_at,
            end_at=schedule.end_at,
            status=BookingStatus.PENDING.value,
            total_price=pricing.final_total,
            notes=data.notes,
        )
        self.repository.add_service_lines(booking, data.service_ids)
        return booking

    def _update_booking_record(
        self,
        booking_id: str,
        tenant_id: str,
        actor: Optional[BookingActor],
        patch: BookingUpdate,
        transition: Dict[str, Any],
    ) -> Booking:
        booking = self.repository.get_for_tenant(booking_id, tenant_id)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})

        actor_class = resolve_actor_class(
            actor,
            booking.customer_id,
            lambda user_id: self.staff_repository.is_active_staff(
                tenant_id, booking.shop_id, user_id
            ),
        )
        current_status = BookingStatus(booking.status)
        requested_status = (
            patch.status if patch.status is not None and patch.status != current_status else None
        )
        fields = patch.provided_fields
        authorize_patch(actor_class, fields, requested_status).raise_for_denial()

        barber_id = patch.barber_id if "barber_id" in fields else booking.barber_id
        booking_date = patch.booking_date or booking.booking_date
        start_time = patch.start_time or booking.start_time
        services_changed = patch.service_ids is not None
        service_ids = patch.service_ids if services_changed else booking.service_ids

        # Only newly requested services must be active; existing lines are repriced as-is
        services = self._resolve_services(
            tenant_id, booking.shop_id, service_ids, active_only=services_changed
        )
        schedule = self._build_schedule(
            tenant_id, booking.shop_id, booking_date, start_time, services
        )

        if requested_status is not None:
            evaluate_transition(
                current_status,
                requested_status,
                actor_class,
                scheduled_start=schedule.start_at,
                scheduled_end=schedule.end_at,
                now=self._now(),
                grace_minutes=self.config_service.get_status_grace_minutes(tenant_id),
                barber_id=barber_id,
            ).raise_for_denial()

        schedule_changed = (
            booking_date != booking.booking_date
            or start_time != booking.start_time
            or (services_changed and list(service_ids) != list(booking.service_ids))
        )
        if schedule_changed:
            self._enforce_lead_time(tenant_id, schedule)

        pricing = self._price_booking(
            tenant_id, booking.shop_id, schedule, patch.pricing_context, patch.total_price
        )

        resulting_status = requested_status or current_status
        # A cancelled booking holds no slot, so it is never checked against hours or other bookings
        if resulting_status is not BookingStatus.CANCELLED:
            self.working_hours_validator.validate(
                booking.shop_id, schedule.booking_date, schedule.start_min, schedule.end_min
            )
            self.conflict_checker.resolve_slot(
                tenant_id,
                booking.shop_id,
                schedule.booking_date,
                schedule.start_time,
                schedule.end_time,
                barber_id=barber_id,
                exclude_booking_id=booking.id,
                auto_assign=False,
            )

        changes: Dict[str, Any] = {
            "barber_id": barber_id,
            "booking_date": schedule.booking_date,
            "start_time": schedule.start_time,
            "end_time": schedule.end_time,
            "start_at": schedule.start_at,
            "end_at": schedule.end_at,
            "total_price": pricing.final_total,
            "status": resulting_status.value,
            "updated_at": self._now(),
        }
        if "notes" in fields:
            changes["notes"] = patch.notes
        self.repository.update(booking, **changes)
        if services_changed:
            self.repository.replace_service_lines(booking, service_ids)

        if requested_status is not None:
            transition.update(
                from_status=current_status.value,
                to_status=requested_status.value,
                actor_class=actor_class,
            )
            self.logger.info(
                f"Booking {booking.id} status {current_status.value} -> "
                f"{requested_status.value} by {actor_class.value}"
            )
        return booking

    def _run_in_transaction(
        self, work: Callable[[], Booking], conflict_details: Dict[str, Any]
    ) -> Booking:
        """Run work inside one transaction, translating overlap failures into conflicts."""
        try:
            with self.repository.transaction():
                return work()
        except IntegrityError as exc:
            message = self._resolve_integrity_conflict_message(exc)
            if message is None:
                self.logger.error(f"Unexpected integrity error: {exc}")
                raise ServiceException("Database operation failed") from exc
            raise BookingConflictException(message=message, details=conflict_details) from exc
        except OperationalError as exc:
            if self._is_deadlock_error(exc):
                raise BookingConflictException(
                    message=GENERAL_CONFLICT_MESSAGE, details=conflict_details
                ) from exc
            self.logger.error(f"Database operation failed: {exc}")
            raise ServiceException("Database operation failed") from exc
        except RepositoryException as exc:
            self._raise_conflict_from_repo_error(exc, conflict_details)
        except SQLAlchemyError as exc:
            self.logger.error(f"Database operation failed: {exc}")
            raise ServiceException("Database operation failed") from exc

    def _resolve_integrity_conflict_message(self, integrity_error: IntegrityError) -> Optional[str]:
        """
        Map a database IntegrityError to a conflict message by constraint name.

        Returns None when the violation is not booking-overlap shaped.
        """
        constraint_name: str = ""
        orig = getattr(integrity_error, "orig", None)
        diag = getattr(orig, "diag", None)

        if diag is not None:
            constraint_name = getattr(diag, "constraint_name", "") or ""

        if constraint_name in _CONFLICT_CONSTRAINTS:
            return _CONFLICT_CONSTRAINTS[constraint_name]

        text = str(orig if orig is not None else integrity_error)
        for name, message in _CONFLICT_CONSTRAINTS.items():
            if name in text:
                return message
        return None

    def _raise_conflict_from_repo_error(
        self, exc: RepositoryException, conflict_details: Dict[str, Any]
    ) -> None:
        """
        Translate repository-level overlap violations and deadlocks into booking
        conflicts; any other repository failure becomes an internal error.
        """
        message = str(exc)
        lowered = message.lower()
        for name, conflict_message in _CONFLICT_CONSTRAINTS.items():
            if name in message:
                raise BookingConflictException(
                    message=conflict_message, details=conflict_details
                ) from exc
        if "deadlock detected" in lowered or "exclusion constraint" in lowered:
            raise BookingConflictException(
                message=GENERAL_CONFLICT_MESSAGE, details=conflict_details
            ) from exc
        self.logger.error(f"Repository failure during booking operation: {exc}")
        raise ServiceException("Database operation failed") from exc

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return TimezoneService.ensure_utc(self.clock())

    def _resolve_services(
        self,
        tenant_id: str,
        shop_id: str,
        service_ids: Sequence[str],
        active_only: bool = True,
    ) -> List[Service]:
        """Load services in request order; every id must exist in the shop's catalog."""
        if not service_ids:
            raise ValidationException("At least one service is required")
        found = {
            service.id: service
            for service in self.catalog_repository.get_services(
                tenant_id, shop_id, service_ids, active_only=active_only
            )
        }
        missing = [service_id for service_id in service_ids if service_id not in found]
        if missing:
            raise ValidationException(
                "Some services are unavailable for this shop",
                details={"service_ids": missing},
            )
        return [found[service_id] for service_id in service_ids]

    def _build_schedule(
        self,
        tenant_id: str,
        shop_id: str,
        booking_date: date,
        start_time: str,
        services: Sequence[Service],
    ) -> BookingSchedule:
        duration = sum(int(service.duration_minutes or 0) for service in services)
        if duration <= 0:
            raise ValidationException("Selected services have no duration")
        start_min = to_minutes(start_time)
        end_min = start_min + duration

        shop = self.catalog_repository.get_shop(tenant_id, shop_id)
        try:
            start_at = TimezoneService.local_to_utc(
                booking_date, to_time(start_time), shop.timezone if shop else None
            )
        except ValueError as exc:
            raise ValidationException(str(exc), details={"start_time": start_time}) from exc

        return BookingSchedule(
            booking_date=booking_date,
            start_time=from_minutes(start_min),
            end_time=from_minutes(end_min),
            start_min=start_min,
            end_min=end_min,
            start_at=start_at,
            end_at=start_at + timedelta(minutes=duration),
            duration_minutes=duration,
            base_total=sum((Decimal(service.price) for service in services), Decimal("0")),
        )

    def _enforce_lead_time(self, tenant_id: str, schedule: BookingSchedule) -> None:
        """Future starts must be at least the tenant's lead time away; past starts are allowed."""
        minutes_ahead = TimezoneService.minutes_until(schedule.start_at, self._now())
        if minutes_ahead <= 0:
            return
        required = self.config_service.get_min_lead_minutes(tenant_id)
        if minutes_ahead < required:
            raise LeadTimeViolationException(required, minutes_ahead)

    def _price_booking(
        self,
        tenant_id: str,
        shop_id: str,
        schedule: BookingSchedule,
        context: Optional[PricingContext],
        expected_total: Optional[Decimal],
    ) -> PricingResult:
        pricing = self.pricing_service.compute_dynamic_pricing(
            tenant_id,
            shop_id,
            schedule.booking_date,
            schedule.start_min,
            schedule.end_min,
            schedule.base_total,
            context,
        )
        if expected_total is not None and not pricing.matches(expected_total, PRICE_TOLERANCE):
            raise PriceMismatchException(expected_total, pricing.final_total)
        return pricing

    # ------------------------------------------------------------------
    # Facts and metrics (never fail the operation)
    # ------------------------------------------------------------------

    def _record_read(self, operation: str) -> None:
        try:
            prometheus_metrics.record_booking_operation(operation, "success")
        except Exception as metrics_error:
            self.logger.warning(f"Failed to record booking metrics: {metrics_error}")

    def _record_failure(self, operation: str, exc: DomainException) -> None:
        try:
            prometheus_metrics.record_booking_operation(operation, "error")
            prometheus_metrics.record_booking_error(operation, exc.code)
        except Exception as metrics_error:
            self.logger.warning(f"Failed to record booking error metrics: {metrics_error}")

    def _handle_post_create(self, booking: Booking) -> None:
        try:
            prometheus_metrics.record_booking_operation("create", "success")
            prometheus_metrics.observe_booking_duration(booking.duration_minutes)
        except Exception as metrics_error:
            self.logger.warning(f"Failed to record booking metrics: {metrics_error}")

        self.event_publisher.publish(
            BookingCreated(
                booking_id=booking.id,
                tenant_id=booking.tenant_id,
                shop_id=booking.shop_id,
                customer_id=booking.customer_id,
                barber_id=booking.barber_id,
                duration_minutes=booking.duration_minutes,
                total_price=Decimal(booking.total_price),
                created_at=booking.created_at or self._now(),
            )
        )

    def _handle_post_update(self, booking: Booking, transition: Dict[str, Any]) -> None:
        actor_class: Optional[ActorClass] = transition.get("actor_class")
        try:
            prometheus_metrics.record_booking_operation("update", "success")
            if actor_class is not None:
                prometheus_metrics.record_status_transition(
                    transition["from_status"], transition["to_status"], actor_class.value
                )
        except Exception as metrics_error:
            self.logger.warning(f"Failed to record booking metrics: {metrics_error}")

        if actor_class is not None:
            self.event_publisher.publish(
                BookingStatusChanged(
                    booking_id=booking.id,
                    tenant_id=booking.tenant_id,
                    from_status=transition["from_status"],
                    to_status=transition["to_status"],
                    actor_class=actor_class.value,
                    changed_at=self._now(),
                )
            )
