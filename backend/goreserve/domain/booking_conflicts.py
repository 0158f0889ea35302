"""
Booking request outcomes.

``BookingAccepted`` and ``BookingConflictError`` are returned values, not
exceptions. A conflict carries the kind, a user-facing message, the
structured details and the alternative slots found for the request.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from goreserve.core.enums import ConflictKind, StaffUnavailableReason
from goreserve.core.time_utils import format_clock

from .conflicts import CandidateSlot, ReservationSnapshot

_STAFF_MESSAGES = {
    StaffUnavailableReason.BOOKED: "Staff member {name} is already booked for this time",
    StaffUnavailableReason.OFF_DUTY: "Staff member {name} is not working at this time",
    StaffUnavailableReason.ON_BREAK: "Staff member {name} is on break during this time",
    StaffUnavailableReason.VACATION: "Staff member {name} is on vacation",
}


@dataclass(frozen=True)
class SuggestedSlot:
    booking_date: date
    start_time: time
    end_time: time

    def to_payload(self) -> Dict[str, Any]:
        return {
            "date": self.booking_date.isoformat(),
            "time": format_clock(self.start_time),
            "end_time": format_clock(self.end_time),
            "available": True,
        }


@dataclass(frozen=True)
class StaffSuggestion:
    staff_id: str
    staff_name: str
    booking_date: date
    start_time: time

    def to_payload(self) -> Dict[str, Any]:
        return {
            "staff_id": self.staff_id,
            "staff_name": self.staff_name,
            "date": self.booking_date.isoformat(),
            "time": format_clock(self.start_time),
            "available": True,
        }


@dataclass(frozen=True)
class SlotSuggestions:
    same_day: Tuple[SuggestedSlot, ...] = field(default_factory=tuple)
    next_available: Optional[SuggestedSlot] = None
    alternative_staff: Tuple[StaffSuggestion, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.same_day and self.next_available is None and not self.alternative_staff

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "same_day": [slot.to_payload() for slot in self.same_day],
            "next_available": self.next_available.to_payload() if self.next_available else None,
        }
        if self.alternative_staff:
            payload["alternative_staff"] = [s.to_payload() for s in self.alternative_staff]
        return payload


def requested_details(candidate: CandidateSlot) -> Dict[str, Any]:
    return {
        "requested_date": candidate.booking_date.isoformat(),
        "requested_time": format_clock(candidate.start_time),
        "requested_duration": candidate.duration,
    }


@dataclass(frozen=True)
class BookingAccepted:
    candidate: CandidateSlot

    accepted = True

    def to_payload(self) -> Dict[str, Any]:
        end_time = self.candidate.end_time
        return {
            "accepted": True,
            **requested_details(self.candidate),
            "end_time": format_clock(end_time) if end_time else None,
        }


@dataclass(frozen=True)
class BookingConflictError:
    kind: ConflictKind
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)
    reason: Optional[StaffUnavailableReason] = None
    suggestions: SlotSuggestions = field(default_factory=SlotSuggestions)

    accepted = False

    def with_suggestions(self, suggestions: SlotSuggestions) -> "BookingConflictError":
        return replace(self, suggestions=suggestions)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": "booking_conflict",
            "message": self.message,
            "conflict_type": self.kind.value,
            "reason": self.reason.value if self.reason else None,
            "details": dict(self.details),
            "suggestions": self.suggestions.to_payload(),
        }

    # Factories, one per conflict kind

    @classmethod
    def _build(
        cls,
        kind: ConflictKind,
        message: str,
        candidate: CandidateSlot,
        colliding: Sequence[ReservationSnapshot] = (),
        reason: Optional[StaffUnavailableReason] = None,
        **extra: Any,
    ) -> "BookingConflictError":
        details: Dict[str, Any] = {"conflict_type": kind.value, **requested_details(candidate)}
        if colliding:
            details["conflicts"] = [reservation.summary() for reservation in colliding]
        details.update(extra)
        return cls(kind=kind, message=message, details=details, reason=reason)

    @classmethod
    def time_slot_taken(
        cls, candidate: CandidateSlot, colliding: Sequence[ReservationSnapshot]
    ) -> "BookingConflictError":
        return cls._build(
            ConflictKind.TIME_SLOT_TAKEN,
            "The selected time slot is already booked",
            candidate,
            colliding,
        )

    @classmethod
    def staff_unavailable(
        cls,
        candidate: CandidateSlot,
        staff_name: str,
        reason: StaffUnavailableReason = StaffUnavailableReason.BOOKED,
        colliding: Sequence[ReservationSnapshot] = (),
        **extra: Any,
    ) -> "BookingConflictError":
        message = _STAFF_MESSAGES[reason].format(name=staff_name)
        return cls._build(
            ConflictKind.STAFF_UNAVAILABLE,
            message,
            candidate,
            colliding,
            reason=reason,
            staff_reason=reason.value,
            **extra,
        )

    @classmethod
    def business_closed(
        cls, candidate: CandidateSlot, working_hours: Mapping[str, Any]
    ) -> "BookingConflictError":
        return cls._build(
            ConflictKind.BUSINESS_CLOSED,
            "The business is closed at the selected time",
            candidate,
            working_hours=dict(working_hours),
        )

    @classmethod
    def capacity_exceeded(
        cls,
        candidate: CandidateSlot,
        current_capacity: int,
        max_capacity: int,
        colliding: Sequence[ReservationSnapshot] = (),
    ) -> "BookingConflictError":
        return cls._build(
            ConflictKind.CAPACITY_EXCEEDED,
            "The maximum capacity for this time slot has been reached",
            candidate,
            colliding,
            current_capacity=current_capacity,
            max_capacity=max_capacity,
        )

    @classmethod
    def advance_limit_exceeded(
        cls, candidate: CandidateSlot, max_advance_days: int
    ) -> "BookingConflictError":
        return cls._build(
            ConflictKind.ADVANCE_LIMIT_EXCEEDED,
            f"Bookings cannot be made more than {max_advance_days} days in advance",
            candidate,
            max_advance_days=max_advance_days,
        )

    @classmethod
    def minimum_notice_required(
        cls, candidate: CandidateSlot, minimum_hours: int
    ) -> "BookingConflictError":
        return cls._build(
            ConflictKind.MINIMUM_NOTICE_REQUIRED,
            f"Bookings require at least {minimum_hours} hours advance notice",
            candidate,
            minimum_notice_hours=minimum_hours,
        )


BookingDecision = Union[BookingAccepted, BookingConflictError]
