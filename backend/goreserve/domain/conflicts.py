"""
Pure overlap and capacity detection over a reservation snapshot.

Slots are half-open ``[start, end)`` in minutes since midnight, so a
reservation ending at 10:00 never collides with one starting at 10:00.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Iterable, Optional, Tuple

from goreserve.core.enums import BookingStatus, ConflictKind, StaffUnavailableReason
from goreserve.core.time_utils import MINUTES_PER_DAY, format_clock, from_minutes, to_minutes


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class CandidateSlot:
    booking_date: date
    start: int
    end: int
    service_id: str
    staff_id: Optional[str] = None

    @classmethod
    def build(
        cls,
        booking_date: date,
        start_time: time,
        duration_minutes: int,
        service_id: str,
        staff_id: Optional[str] = None,
    ) -> "CandidateSlot":
        start = to_minutes(start_time)
        return cls(booking_date, start, start + int(duration_minutes), service_id, staff_id)

    @property
    def start_time(self) -> time:
        return from_minutes(self.start)

    @property
    def end_time(self) -> Optional[time]:
        """None when the slot runs past midnight."""
        return from_minutes(self.end) if self.end < MINUTES_PER_DAY else None

    @property
    def duration(self) -> int:
        return self.end - self.start

    def moved_to(self, start: int, staff_id: Optional[str] = None) -> "CandidateSlot":
        return CandidateSlot(
            self.booking_date,
            start,
            start + self.duration,
            self.service_id,
            staff_id if staff_id is not None else self.staff_id,
        )


@dataclass(frozen=True)
class ReservationSnapshot:
    """Immutable view of an existing reservation as seen by the detector."""

    booking_id: str
    booking_ref: str
    booking_date: date
    start: int
    end: int
    service_id: str
    staff_id: Optional[str] = None
    status: str = BookingStatus.PENDING.value
    service_name: Optional[str] = None
    staff_name: Optional[str] = None

    @classmethod
    def from_booking(cls, booking: Any) -> "ReservationSnapshot":
        service = getattr(booking, "service", None)
        staff = getattr(booking, "staff", None)
        return cls(
            booking_id=booking.id,
            booking_ref=booking.booking_ref,
            booking_date=booking.booking_date,
            start=to_minutes(booking.start_time),
            end=to_minutes(booking.end_time),
            service_id=booking.service_id,
            staff_id=booking.staff_id,
            status=booking.status,
            service_name=getattr(service, "name", None),
            staff_name=getattr(staff, "name", None),
        )

    def summary(self) -> dict[str, Any]:
        """Public collision summary: booking reference, never the primary key."""
        return {
            "booking_ref": self.booking_ref,
            "start_time": format_clock(from_minutes(self.start)),
            "end_time": format_clock(from_minutes(self.end)),
            "service": self.service_name,
            "staff": self.staff_name,
        }


@dataclass(frozen=True)
class SlotCollision:
    kind: ConflictKind
    colliding: Tuple[ReservationSnapshot, ...] = field(default_factory=tuple)
    reason: Optional[StaffUnavailableReason] = None
    current_count: int = 0
    capacity: int = 1


def same_resource(candidate: CandidateSlot, reservation: ReservationSnapshot) -> bool:
    """
    Whether two reservations compete for the same place.

    A staff request competes with that staff member's bookings and with the
    unassigned bookings of its service. A request without staff competes
    with every booking of its service. Either order of booking gives the
    same answer.
    """
    if candidate.staff_id:
        if reservation.staff_id == candidate.staff_id:
            return True
        return reservation.staff_id is None and reservation.service_id == candidate.service_id
    return reservation.service_id == candidate.service_id


def colliding_reservations(
    candidate: CandidateSlot,
    existing: Iterable[ReservationSnapshot],
    exclude_booking_id: Optional[str] = None,
) -> Tuple[ReservationSnapshot, ...]:
    found = []
    for reservation in existing:
        if reservation.status == BookingStatus.CANCELLED.value:
            continue
        if exclude_booking_id and reservation.booking_id == exclude_booking_id:
            continue
        if reservation.booking_date != candidate.booking_date:
            continue
        if not same_resource(candidate, reservation):
            continue
        if overlaps(candidate.start, candidate.end, reservation.start, reservation.end):
            found.append(reservation)
    return tuple(sorted(found, key=lambda r: (r.start, r.booking_ref)))


def check(
    candidate: CandidateSlot,
    existing: Iterable[ReservationSnapshot],
    capacity: int = 1,
    exclude_booking_id: Optional[str] = None,
) -> Optional[SlotCollision]:
    """
    Decide whether ``candidate`` fits next to ``existing``.

    Returns None when the slot is free. With capacity 1 any overlap is a
    collision (``staff_unavailable``/booked for a staff member,
    ``time_slot_taken`` otherwise). With a larger capacity the slot is
    refused with ``capacity_exceeded`` once the overlap count reaches it.
    """
    capacity = max(1, int(capacity))
    colliding = colliding_reservations(candidate, existing, exclude_booking_id)
    if not colliding:
        return None

    if capacity == 1:
        if candidate.staff_id and any(r.staff_id == candidate.staff_id for r in colliding):
            return SlotCollision(
                kind=ConflictKind.STAFF_UNAVAILABLE,
                colliding=colliding,
                reason=StaffUnavailableReason.BOOKED,
                current_count=len(colliding),
                capacity=capacity,
            )
        return SlotCollision(
            kind=ConflictKind.TIME_SLOT_TAKEN,
            colliding=colliding,
            current_count=len(colliding),
            capacity=capacity,
        )

    if len(colliding) >= capacity:
        return SlotCollision(
            kind=ConflictKind.CAPACITY_EXCEEDED,
            colliding=colliding,
            current_count=len(colliding),
            capacity=capacity,
        )
    return None
