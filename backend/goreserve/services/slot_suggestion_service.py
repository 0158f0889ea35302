# backend/goreserve/services/slot_suggestion_service.py
"""
Slot Suggestion Service for GoReserve

Builds alternatives for a refused request from live availability:

- same_day: free starts on the requested date, nearest to the requested time
- next_available: the first later date (within the booking horizon) with a
  free start, nearest to the requested time of day
- alternative_staff: other qualified staff members free at the exact slot

Every candidate is run through ConflictChecker.check_candidate, so a
suggestion is never a slot that would itself be refused. Suggestions are an
enhancement to the conflict response: each part fails on its own and
degrades to an empty result.
"""

from datetime import date, datetime, time, timedelta
import logging
from typing import Callable, List, Optional, Tuple, TypeVar

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.time_utils import from_minutes, local_now, to_minutes
from ..domain.availability import ClosedDay, OpenWindow
from ..domain.booking_conflicts import SlotSuggestions, StaffSuggestion, SuggestedSlot
from ..domain.conflicts import CandidateSlot, ReservationSnapshot
from ..models.business import Staff
from ..models.service import Service
from .base import BaseService
from .conflict_checker import ConflictChecker, SlotContext

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SlotSuggestionService(BaseService):
    def __init__(
        self,
        db: Session,
        checker: Optional[ConflictChecker] = None,
        same_day_limit: Optional[int] = None,
        alternative_staff_limit: Optional[int] = None,
    ):
        super().__init__(db)
        self.checker = checker or ConflictChecker(db)
        self.same_day_limit = (
            settings.suggestion_same_day_limit if same_day_limit is None else same_day_limit
        )
        self.alternative_staff_limit = (
            settings.suggestion_alternative_staff_limit
            if alternative_staff_limit is None
            else alternative_staff_limit
        )

    def _best_effort(self, part: str, default: T, func: Callable[[], T]) -> T:
        try:
            return func()
        except Exception as exc:
            self.logger.warning(
                f"Suggestion part {part} failed: {exc}",
                extra={"suggestion_part": part, "error": str(exc), "error_type": type(exc).__name__},
            )
            return default

    # Public API

    @BaseService.measure_operation("suggest_slots")
    def suggest(
        self,
        service: Service,
        requested_date: date,
        requested_time: time,
        staff: Optional[Staff] = None,
        now: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> SlotSuggestions:
        """Suggestions for a service on a date and time, optionally with a staff member."""
        now = now or local_now()
        try:
            context = self.checker.load_context(
                service.business,
                service,
                requested_date,
                staff=staff,
                exclude_booking_id=exclude_booking_id,
            )
        except Exception as exc:
            self.logger.warning(f"Could not load suggestion context for service {service.id}: {exc}")
            return SlotSuggestions()
        requested = context.candidate(to_minutes(requested_time), duration_minutes)
        return self.suggest_from_context(context, requested, now)

    def suggest_from_context(
        self, context: SlotContext, requested: CandidateSlot, now: datetime
    ) -> SlotSuggestions:
        same_day = self._best_effort(
            "same_day", (), lambda: self.same_day(context, requested, now)
        )
        next_available = self._best_effort(
            "next_available", None, lambda: self.next_available(context, requested, now)
        )
        alternative_staff: Tuple[StaffSuggestion, ...] = ()
        if context.staff is not None:
            alternative_staff = self._best_effort(
                "alternative_staff", (), lambda: self.alternative_staff(context, requested, now)
            )
        return SlotSuggestions(
            same_day=same_day,
            next_available=next_available,
            alternative_staff=alternative_staff,
        )

    # Parts

    def _walk_window(self, context: SlotContext) -> Optional[OpenWindow]:
        """The window whose grid is walked: the staff member's when one is requested."""
        window = context.staff_window if context.staff is not None else context.business_window
        if window is None or isinstance(window, ClosedDay):
            return None
        return window

    def free_starts(self, context: SlotContext, duration: int, now: datetime) -> List[int]:
        """Grid starts on the context's date that pass every rule."""
        window = self._walk_window(context)
        if window is None:
            return []
        step = context.service.effective_slot_interval_minutes
        free = []
        for start in window.candidate_starts(duration, step):
            if self.checker.check_candidate(context, context.candidate(start, duration), now) is None:
                free.append(start)
        return free

    @staticmethod
    def _by_proximity(starts: List[int], target: int) -> List[int]:
        return sorted(starts, key=lambda start: (abs(start - target), start))

    def _slot(self, booking_date: date, start: int, duration: int) -> SuggestedSlot:
        return SuggestedSlot(
            booking_date=booking_date,
            start_time=from_minutes(start),
            end_time=from_minutes(start + duration),
        )

    def same_day(
        self, context: SlotContext, requested: CandidateSlot, now: datetime
    ) -> Tuple[SuggestedSlot, ...]:
        if self.same_day_limit <= 0:
            return ()
        starts = [s for s in self.free_starts(context, requested.duration, now) if s != requested.start]
        nearest = self._by_proximity(starts, requested.start)[: self.same_day_limit]
        return tuple(self._slot(context.booking_date, s, requested.duration) for s in nearest)

    def next_available(
        self, context: SlotContext, requested: CandidateSlot, now: datetime
    ) -> Optional[SuggestedSlot]:
        """Scan forward day by day, bounded by the service's booking horizon."""
        first_day = context.booking_date + timedelta(days=1)
        horizon = now.date() + timedelta(days=context.service.effective_advance_booking_days)
        if first_day > horizon:
            return None

        grouped = self.checker.repository.get_bookings_for_date_range(
            context.business.id, first_day, horizon, context.exclude_booking_id
        )
        day = first_day
        while day <= horizon:
            day_reservations = [
                ReservationSnapshot.from_booking(b) for b in grouped.get(day, [])
            ]
            day_context = self.checker.load_context(
                context.business,
                context.service,
                day,
                staff=context.staff,
                exclude_booking_id=context.exclude_booking_id,
                reservations=day_reservations,
            )
            starts = self.free_starts(day_context, requested.duration, now)
            if starts:
                best = self._by_proximity(starts, requested.start)[0]
                return self._slot(day, best, requested.duration)
            day += timedelta(days=1)

        self.logger.debug(
            f"No free slot for service {context.service.id} between {first_day} and {horizon}"
        )
        return None

    def alternative_staff(
        self, context: SlotContext, requested: CandidateSlot, now: datetime
    ) -> Tuple[StaffSuggestion, ...]:
        if context.staff is None or self.alternative_staff_limit <= 0:
            return ()
        others = self.checker.availability_repository.get_qualified_staff(
            context.service.id, exclude_staff_id=context.staff.id
        )
        found = []
        for member in others:
            if member.business_id != context.business.id:
                continue
            member_context = self.checker.with_staff(context, member)
            candidate = requested.moved_to(requested.start, staff_id=member.id)
            if self.checker.check_candidate(member_context, candidate, now) is None:
                found.append(
                    StaffSuggestion(
                        staff_id=member.id,
                        staff_name=member.name,
                        booking_date=context.booking_date,
                        start_time=requested.start_time,
                    )
                )
            if len(found) >= self.alternative_staff_limit:
                break
        return tuple(found)
