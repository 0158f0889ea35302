"""
Unit tests for the booking conflict taxonomy and its public payloads.
"""

from datetime import date, time

from goreserve.core.enums import ConflictKind, StaffUnavailableReason
from goreserve.domain.booking_conflicts import (
    BookingAccepted,
    BookingConflictError,
    SlotSuggestions,
    StaffSuggestion,
    SuggestedSlot,
)
from goreserve.domain.conflicts import CandidateSlot, ReservationSnapshot

DAY = date(2026, 3, 3)
CANDIDATE = CandidateSlot(DAY, 600, 660, "svc-internal-id", "staff-internal-id")
TAKEN = ReservationSnapshot(
    booking_id="01HZZZINTERNALULID000000",
    booking_ref="BKTAKEN01",
    booking_date=DAY,
    start=600,
    end=660,
    service_id="svc-internal-id",
    service_name="Haircut",
    staff_name="Alex",
)


def test_time_slot_taken_payload():
    conflict = BookingConflictError.time_slot_taken(CANDIDATE, [TAKEN])
    payload = conflict.to_payload()

    assert conflict.accepted is False
    assert payload["error"] == "booking_conflict"
    assert payload["conflict_type"] == "time_slot_taken"
    assert payload["message"] == "The selected time slot is already booked"
    assert payload["details"]["requested_date"] == "2026-03-03"
    assert payload["details"]["requested_time"] == "10:00"
    assert payload["details"]["requested_duration"] == 60
    assert payload["details"]["conflicts"] == [TAKEN.summary()]


def test_payload_never_leaks_internal_ids():
    conflict = BookingConflictError.staff_unavailable(
        CANDIDATE, "Alex", StaffUnavailableReason.BOOKED, colliding=[TAKEN]
    )
    rendered = repr(conflict.to_payload())
    assert "01HZZZINTERNALULID000000" not in rendered
    assert "svc-internal-id" not in rendered
    assert "staff-internal-id" not in rendered


def test_staff_unavailable_messages_by_reason():
    expected = {
        StaffUnavailableReason.BOOKED: "Staff member Alex is already booked for this time",
        StaffUnavailableReason.OFF_DUTY: "Staff member Alex is not working at this time",
        StaffUnavailableReason.ON_BREAK: "Staff member Alex is on break during this time",
        StaffUnavailableReason.VACATION: "Staff member Alex is on vacation",
    }
    for reason, message in expected.items():
        conflict = BookingConflictError.staff_unavailable(CANDIDATE, "Alex", reason)
        assert conflict.message == message
        assert conflict.reason is reason
        assert conflict.details["staff_reason"] == reason.value


def test_policy_conflicts_carry_limits():
    advance = BookingConflictError.advance_limit_exceeded(CANDIDATE, 30)
    assert advance.kind is ConflictKind.ADVANCE_LIMIT_EXCEEDED
    assert advance.message == "Bookings cannot be made more than 30 days in advance"
    assert advance.details["max_advance_days"] == 30

    notice = BookingConflictError.minimum_notice_required(CANDIDATE, 2)
    assert notice.message == "Bookings require at least 2 hours advance notice"
    assert notice.details["minimum_notice_hours"] == 2


def test_capacity_exceeded_details():
    conflict = BookingConflictError.capacity_exceeded(CANDIDATE, 3, 3, [TAKEN])
    assert conflict.message == "The maximum capacity for this time slot has been reached"
    assert conflict.details["current_capacity"] == 3
    assert conflict.details["max_capacity"] == 3


def test_business_closed_reports_hours():
    conflict = BookingConflictError.business_closed(CANDIDATE, {"closed": True, "reason": "no_hours"})
    assert conflict.details["working_hours"] == {"closed": True, "reason": "no_hours"}


def test_with_suggestions_returns_new_value():
    conflict = BookingConflictError.time_slot_taken(CANDIDATE, [TAKEN])
    suggestions = SlotSuggestions(
        same_day=(SuggestedSlot(DAY, time(11, 0), time(12, 0)),),
        next_available=SuggestedSlot(date(2026, 3, 4), time(10, 0), time(11, 0)),
        alternative_staff=(StaffSuggestion("st-2", "Sam", DAY, time(10, 0)),),
    )

    enriched = conflict.with_suggestions(suggestions)

    assert conflict.suggestions.is_empty
    assert enriched.suggestions == suggestions
    assert enriched.to_payload()["suggestions"] == {
        "same_day": [{"date": "2026-03-03", "time": "11:00", "end_time": "12:00", "available": True}],
        "next_available": {
            "date": "2026-03-04",
            "time": "10:00",
            "end_time": "11:00",
            "available": True,
        },
        "alternative_staff": [
            {
                "staff_id": "st-2",
                "staff_name": "Sam",
                "date": "2026-03-03",
                "time": "10:00",
                "available": True,
            }
        ],
    }


def test_empty_suggestions_payload_omits_alternative_staff():
    assert SlotSuggestions().to_payload() == {"same_day": [], "next_available": None}


def test_accepted_payload():
    payload = BookingAccepted(CANDIDATE).to_payload()
    assert payload["accepted"] is True
    assert payload["requested_time"] == "10:00"
    assert payload["end_time"] == "11:00"
