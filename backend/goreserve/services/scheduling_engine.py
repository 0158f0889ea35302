# backend/goreserve/services/scheduling_engine.py
"""
Scheduling Engine for GoReserve

The entry point callers use. It composes the conflict checker, the
suggestion service, the balance guard and the expiration sweeper:

- evaluate_booking_request: accept a slot or explain why not, with
  alternatives
- evaluate_balance: accept a payment or describe the shortage and the ways
  to cover it
- sweep_expired_reservations: cancel unpaid reservations past their timeout
- reserve_slot: validate and insert a pending booking under the slot lock

Conflicts and shortages are returned, never raised.
"""

from datetime import date, datetime
from decimal import Decimal
import logging
from typing import Any, Mapping, Optional, Union

from sqlalchemy.orm import Session

from ..core.booking_lock import BookingLockManager, get_lock_manager, slot_lock_key
from ..core.config import settings
from ..core.enums import BalanceKind, BookingStatus, CancelledBy, PaymentStatus
from ..core.exceptions import BusinessRuleException
from ..core.time_utils import local_now, to_minutes
from ..domain.balance import BalanceDecision
from ..domain.booking_conflicts import BookingConflictError, BookingDecision
from ..domain.conflicts import CandidateSlot
from ..domain.sweep import SweepReport
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.audit_repository import AuditRepository
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from ..schemas.booking_request import BookingSlotRequest
from .balance_guard import BalanceGuard
from .base import BaseService
from .conflict_checker import ConflictChecker, SlotContext
from .expiration_sweeper import ExpirationSweeper
from .slot_suggestion_service import SlotSuggestionService

logger = logging.getLogger(__name__)


class SchedulingEngine(BaseService):
    def __init__(
        self,
        db: Session,
        checker: Optional[ConflictChecker] = None,
        suggestions: Optional[SlotSuggestionService] = None,
        guard: Optional[BalanceGuard] = None,
        sweeper: Optional[ExpirationSweeper] = None,
        lock_manager: Optional[BookingLockManager] = None,
        booking_repository: Optional[BookingRepository] = None,
        audit_repository: Optional[AuditRepository] = None,
        daily_limit: Optional[int] = None,
    ):
        super().__init__(db)
        self.checker = checker or ConflictChecker(db)
        self.suggestions = suggestions or SlotSuggestionService(db, checker=self.checker)
        self.guard = guard or BalanceGuard()
        self.lock_manager = lock_manager or get_lock_manager()
        self._sweeper = sweeper
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.audit_repository = audit_repository or RepositoryFactory.create_audit_repository(db)
        self.daily_limit = settings.booking_daily_limit if daily_limit is None else daily_limit

    @property
    def sweeper(self) -> ExpirationSweeper:
        if self._sweeper is None:
            self._sweeper = ExpirationSweeper(self.db, lock_manager=self.lock_manager)
        return self._sweeper

    def _with_suggestions(
        self,
        conflict: BookingConflictError,
        context: SlotContext,
        request: BookingSlotRequest,
        now: datetime,
    ) -> BookingConflictError:
        requested = context.candidate(to_minutes(request.start_time), request.duration_minutes)
        return conflict.with_suggestions(
            self.suggestions.suggest_from_context(context, requested, now)
        )

    @BaseService.measure_operation("evaluate_booking_request")
    def evaluate_booking_request(
        self, request: BookingSlotRequest, now: Optional[datetime] = None
    ) -> BookingDecision:
        """
        Decide whether a slot can be booked.

        Args:
            request: The requested business, service, date, time and staff
            now: Current local time

        Returns:
            BookingAccepted, or BookingConflictError carrying suggestions

        Raises:
            NotFoundException: unknown business, service or staff
            ValidationException: the resources do not belong together
        """
        now = now or local_now()
        decision, context = self.checker.evaluate(request, now=now)
        if isinstance(decision, BookingConflictError):
            prometheus_metrics.record_booking_decision(decision.kind.value)
            return self._with_suggestions(decision, context, request, now)
        prometheus_metrics.record_booking_decision("accepted")
        return decision

    def evaluate_balance(
        self,
        required: Any,
        available: Any,
        kind: BalanceKind = BalanceKind.WALLET,
        context: Optional[Mapping[str, Any]] = None,
    ) -> BalanceDecision:
        return self.guard.evaluate(required, available, kind, context)

    def sweep_expired_reservations(
        self,
        expiration_hours: Optional[int] = None,
        dry_run: bool = False,
        notify: bool = False,
        now: Optional[datetime] = None,
    ) -> SweepReport:
        return self.sweeper.sweep(
            expiration_hours=expiration_hours, dry_run=dry_run, notify=notify, now=now
        )

    @BaseService.measure_operation("reserve_slot")
    def reserve_slot(
        self,
        request: BookingSlotRequest,
        customer_id: str,
        amount: Optional[Any] = None,
        payment_intent_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Union[Booking, BookingConflictError]:
        """
        Insert a pending, unpaid booking if the slot is still free.

        Validation is repeated inside the business/date lock so two
        concurrent requests for the last free place cannot both succeed.
        Suggestions for a refused request are built after the lock is
        released.

        Returns:
            The created Booking, or BookingConflictError

        Raises:
            BookingLockTimeoutException: the slot lock could not be acquired
            BusinessRuleException: the customer reached the daily booking limit
        """
        now = now or local_now()
        resources = self.checker.resolve_resources(
            request.business_id, request.service_id, request.staff_id
        )
        with self.lock_manager.hold(slot_lock_key(request.business_id, request.booking_date)):
            decision, context = self.checker.evaluate(request, now=now, resources=resources)
            if not isinstance(decision, BookingConflictError):
                self._enforce_daily_limit(customer_id, request.booking_date)
                price = resources.service.price if amount is None else amount
                booking = self._insert(
                    resources.business.id,
                    decision.candidate,
                    customer_id,
                    price,
                    payment_intent_id,
                    now,
                )

        if isinstance(decision, BookingConflictError):
            prometheus_metrics.record_booking_decision(decision.kind.value)
            return self._with_suggestions(decision, context, request, now)

        prometheus_metrics.record_booking_decision("reserved")
        self.logger.info(
            f"Reserved {booking.booking_ref} for business {booking.business_id} "
            f"on {booking.booking_date} at {booking.start_time}",
            extra={"booking_ref": booking.booking_ref},
        )
        return booking

    def _enforce_daily_limit(self, customer_id: str, booking_date: date) -> None:
        held = self.booking_repository.count_for_customer_on_date(customer_id, booking_date)
        if held >= self.daily_limit:
            prometheus_metrics.record_booking_decision("daily_limit_reached")
            raise BusinessRuleException(
                f"You have reached the daily booking limit of {self.daily_limit} bookings",
                code="DAILY_BOOKING_LIMIT_REACHED",
                details={
                    "daily_limit": self.daily_limit,
                    "booking_date": booking_date.isoformat(),
                },
            )

    def _insert(
        self,
        business_id: str,
        candidate: CandidateSlot,
        customer_id: str,
        amount: Any,
        payment_intent_id: Optional[str],
        now: datetime,
    ) -> Booking:
        with self.transaction():
            booking = self.booking_repository.create(
                user_id=customer_id,
                business_id=business_id,
                service_id=candidate.service_id,
                staff_id=candidate.staff_id,
                booking_date=candidate.booking_date,
                start_time=candidate.start_time,
                end_time=candidate.end_time,
                amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                status=BookingStatus.PENDING.value,
                payment_status=PaymentStatus.PENDING.value,
                payment_intent_id=payment_intent_id,
                created_at=now,
            )
            self.audit_repository.write(
                booking_id=booking.id,
                action="created",
                performed_by=CancelledBy.USER.value,
                description="Booking reserved, awaiting payment",
                metadata={"after": booking.audit_snapshot()},
                at=now,
            )
        return booking
