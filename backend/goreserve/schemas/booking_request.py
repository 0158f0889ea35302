"""
Inputs accepted by the scheduling engine.

Requests arrive already parsed and authorized; these models only pin down
the shape and basic bounds of what the engine is asked to evaluate.
"""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.time_utils import parse_clock


class BookingSlotRequest(BaseModel):
    """A request to evaluate (or reserve) one slot."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, frozen=True)

    business_id: str = Field(..., min_length=1)
    service_id: str = Field(..., min_length=1)
    booking_date: date
    start_time: time
    duration_minutes: Optional[int] = Field(
        None,
        ge=1,
        le=24 * 60,
        description="Defaults to the service duration when omitted",
    )
    staff_id: Optional[str] = Field(None, description="Specific staff member requested")
    exclude_booking_id: Optional[str] = Field(
        None, description="Reservation being rescheduled; ignored by the conflict check"
    )

    @field_validator("booking_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        if isinstance(v, datetime):
            raise ValueError("booking_date must be a date, not a datetime")
        return v

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_time_string(cls, v: object) -> object:
        """Convert HH:MM strings to time objects."""
        if isinstance(v, str):
            parsed = parse_clock(v)
            if parsed is None:
                raise ValueError(f"Invalid time format: {v}. Expected HH:MM format.")
            return parsed
        return v

    @field_validator("staff_id", "exclude_booking_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v
