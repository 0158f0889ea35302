# backend/goreserve/services/conflict_checker.py
"""
Conflict Checker Service for GoReserve

Runs the ordered validation of one requested slot. The first failing rule
decides the outcome, so the same request always yields the same conflict:

1. business_closed
2. advance_limit_exceeded
3. minimum_notice_required
4. staff availability (vacation, off duty, on break)
5. staff/time overlap
6. capacity_exceeded

Decisions are taken over a SlotContext: the calendar and reservation
snapshot for one business, service and date. The suggestion engine reuses
the same context so it never proposes a slot this checker would refuse.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging
from typing import Iterable, Optional, Tuple, Union

from sqlalchemy.orm import Session

from ..core.enums import ConflictKind, StaffUnavailableReason
from ..core.exceptions import NotFoundException, ValidationException
from ..core.time_utils import MINUTES_PER_DAY, local_now
from ..domain import conflicts
from ..domain.availability import ClosedDay, ResolvedWindow
from ..domain.booking_conflicts import BookingAccepted, BookingConflictError
from ..domain.conflicts import CandidateSlot, ReservationSnapshot
from ..models.business import Business, Staff
from ..models.service import Service
from ..repositories.availability_repository import AvailabilityRepository
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.booking_request import BookingSlotRequest
from .availability_resolver import AvailabilityResolver
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotContext:
    """Everything needed to decide slots for one service (and staff member) on one date."""

    business: Business
    service: Service
    booking_date: date
    business_window: ResolvedWindow
    reservations: Tuple[ReservationSnapshot, ...]
    staff: Optional[Staff] = None
    staff_window: Optional[ResolvedWindow] = None
    exclude_booking_id: Optional[str] = None

    @property
    def staff_id(self) -> Optional[str]:
        return self.staff.id if self.staff is not None else None

    def candidate(self, start: int, duration: Optional[int] = None) -> CandidateSlot:
        length = duration or int(self.service.duration_minutes)
        return CandidateSlot(
            booking_date=self.booking_date,
            start=start,
            end=start + length,
            service_id=self.service.id,
            staff_id=self.staff_id,
        )


@dataclass(frozen=True)
class ResolvedResources:
    business: Business
    service: Service
    staff: Optional[Staff] = None


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts and time validation.

    This service centralizes all conflict detection logic so that
    evaluation, reservation and suggestions apply identical rules.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[ConflictCheckerRepository] = None,
        availability_repository: Optional[AvailabilityRepository] = None,
        resolver: Optional[AvailabilityResolver] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)
        self.availability_repository = (
            availability_repository or RepositoryFactory.create_availability_repository(db)
        )
        self.resolver = resolver or AvailabilityResolver(db, self.availability_repository)

    # Resource lookup

    def resolve_resources(
        self, business_id: str, service_id: str, staff_id: Optional[str] = None
    ) -> ResolvedResources:
        """
        Load and cross-check the business, service and optional staff member.

        Raises:
            NotFoundException: unknown or inactive business/service/staff
            ValidationException: the resources do not belong together
        """
        business = self.availability_repository.get_business(business_id)
        if business is None or not business.is_active:
            raise NotFoundException(f"Business {business_id} not found", code="BUSINESS_NOT_FOUND")

        service = self.availability_repository.get_service(service_id)
        if service is None or not service.is_active:
            raise NotFoundException(f"Service {service_id} not found", code="SERVICE_NOT_FOUND")
        if service.business_id != business.id:
            raise ValidationException(
                "Service does not belong to this business",
                code="SERVICE_BUSINESS_MISMATCH",
                details={"service_id": service_id, "business_id": business_id},
            )

        staff = None
        if staff_id:
            staff = self.availability_repository.get_staff(staff_id)
            if staff is None:
                raise NotFoundException(f"Staff {staff_id} not found", code="STAFF_NOT_FOUND")
            if staff.business_id != business.id:
                raise ValidationException(
                    "Staff member does not belong to this business",
                    code="STAFF_BUSINESS_MISMATCH",
                    details={"staff_id": staff_id, "business_id": business_id},
                )
            qualified = {member.id for member in service.staff}
            if qualified and staff.id not in qualified:
                raise ValidationException(
                    "Staff member does not perform this service",
                    code="STAFF_NOT_QUALIFIED",
                    details={"staff_id": staff_id, "service_id": service_id},
                )

        return ResolvedResources(business=business, service=service, staff=staff)

    # Context

    def load_context(
        self,
        business: Business,
        service: Service,
        booking_date: date,
        staff: Optional[Staff] = None,
        exclude_booking_id: Optional[str] = None,
        reservations: Optional[Iterable[ReservationSnapshot]] = None,
    ) -> SlotContext:
        """
        Snapshot the calendar for one date.

        ``reservations`` may be passed in when the caller already loaded a
        wider range; otherwise the business's bookings for the date are read.
        """
        if reservations is None:
            bookings = self.repository.get_bookings_for_conflict_check(
                business.id, booking_date, exclude_booking_id
            )
            snapshot = tuple(ReservationSnapshot.from_booking(b) for b in bookings)
        else:
            snapshot = tuple(r for r in reservations if r.booking_date == booking_date)

        return SlotContext(
            business=business,
            service=service,
            booking_date=booking_date,
            business_window=self.resolver.business_window(business, booking_date),
            reservations=snapshot,
            staff=staff,
            staff_window=(
                self.resolver.staff_window(business, staff, booking_date)
                if staff is not None
                else None
            ),
            exclude_booking_id=exclude_booking_id,
        )

    def with_staff(self, context: SlotContext, staff: Staff) -> SlotContext:
        """Same date and snapshot, different staff member."""
        return SlotContext(
            business=context.business,
            service=context.service,
            booking_date=context.booking_date,
            business_window=context.business_window,
            reservations=context.reservations,
            staff=staff,
            staff_window=self.resolver.staff_window(context.business, staff, context.booking_date),
            exclude_booking_id=context.exclude_booking_id,
        )

    # Decisions

    def check_candidate(
        self, context: SlotContext, candidate: CandidateSlot, now: datetime
    ) -> Optional[BookingConflictError]:
        """
        Apply every rule, in order, to one candidate slot.

        Returns None when the slot is acceptable. Pure over ``context``.
        """
        service = context.service
        window = context.business_window

        # 1. Business hours
        if (
            isinstance(window, ClosedDay)
            or candidate.end > MINUTES_PER_DAY
            or not window.contains(candidate.start, candidate.end)
        ):
            return BookingConflictError.business_closed(candidate, window.to_payload())

        # 2. Maximum lead time
        max_days = service.effective_advance_booking_days
        if candidate.booking_date > now.date() + timedelta(days=max_days):
            return BookingConflictError.advance_limit_exceeded(candidate, max_days)

        # 3. Minimum notice
        min_hours = service.effective_min_advance_hours
        starts_at = datetime.combine(candidate.booking_date, candidate.start_time)
        if starts_at < now + timedelta(hours=min_hours):
            return BookingConflictError.minimum_notice_required(candidate, min_hours)

        # 4. Staff availability
        staff = context.staff
        if staff is not None:
            unavailable = self._staff_unavailability(context.staff_window, candidate)
            if unavailable is not None:
                reason, extra = unavailable
                return BookingConflictError.staff_unavailable(
                    candidate, staff.name, reason, **extra
                )

        # 5-6. Overlap and capacity
        collision = conflicts.check(
            candidate,
            context.reservations,
            capacity=service.capacity,
            exclude_booking_id=context.exclude_booking_id,
        )
        if collision is None:
            return None
        if collision.kind is ConflictKind.CAPACITY_EXCEEDED:
            return BookingConflictError.capacity_exceeded(
                candidate, collision.current_count, collision.capacity, collision.colliding
            )
        if collision.kind is ConflictKind.STAFF_UNAVAILABLE and staff is not None:
            return BookingConflictError.staff_unavailable(
                candidate,
                staff.name,
                StaffUnavailableReason.BOOKED,
                colliding=collision.colliding,
            )
        return BookingConflictError.time_slot_taken(candidate, collision.colliding)

    @staticmethod
    def _staff_unavailability(
        window: Optional[ResolvedWindow], candidate: CandidateSlot
    ) -> Optional[Tuple[StaffUnavailableReason, dict]]:
        if window is None:
            return None
        if isinstance(window, ClosedDay):
            if window.reason == "vacation":
                return StaffUnavailableReason.VACATION, {"staff_hours": window.to_payload()}
            return StaffUnavailableReason.OFF_DUTY, {"staff_hours": window.to_payload()}
        pause = window.break_overlapping(candidate.start, candidate.end)
        if pause is not None:
            return StaffUnavailableReason.ON_BREAK, {"break": pause.to_payload()}
        if not window.contains(candidate.start, candidate.end):
            return StaffUnavailableReason.OFF_DUTY, {"staff_hours": window.to_payload()}
        return None

    @BaseService.measure_operation("evaluate_slot")
    def evaluate(
        self,
        request: BookingSlotRequest,
        now: Optional[datetime] = None,
        resources: Optional[ResolvedResources] = None,
    ) -> Tuple[Union[BookingAccepted, BookingConflictError], SlotContext]:
        """
        Evaluate a request without suggestions.

        Returns the decision together with the context it was taken on, so
        callers can build suggestions from the same snapshot.
        """
        now = now or local_now()
        resources = resources or self.resolve_resources(
            request.business_id, request.service_id, request.staff_id
        )
        context = self.load_context(
            resources.business,
            resources.service,
            request.booking_date,
            staff=resources.staff,
            exclude_booking_id=request.exclude_booking_id,
        )
        duration = request.duration_minutes or int(resources.service.duration_minutes)
        candidate = CandidateSlot.build(
            request.booking_date,
            request.start_time,
            duration,
            resources.service.id,
            resources.staff.id if resources.staff is not None else None,
        )

        conflict = self.check_candidate(context, candidate, now)
        if conflict is not None:
            self.logger.info(
                f"Slot refused for business {resources.business.id} on {request.booking_date} "
                f"at {request.start_time}: {conflict.kind.value}"
            )
            return conflict, context
        return BookingAccepted(candidate), context
