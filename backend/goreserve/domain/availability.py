"""Open-window resolution for a business or staff member on one date."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import Any, Iterator, Mapping, Optional, Protocol, Sequence, Tuple, Union

from goreserve.core.enums import AvailabilityExceptionType
from goreserve.core.time_utils import format_clock, from_minutes, parse_clock, to_minutes


class DayOverride(Protocol):
    """Anything shaped like a StaffAvailability row."""

    type: str
    start_time: Optional[time]
    end_time: Optional[time]


@dataclass(frozen=True)
class TimeRange:
    """Half-open range of minutes since midnight."""

    start: int
    end: int

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end

    def to_payload(self) -> dict[str, str]:
        return {
            "start": format_clock(from_minutes(self.start)),
            "end": format_clock(from_minutes(self.end)),
        }


@dataclass(frozen=True)
class OpenWindow:
    open_time: time
    close_time: time
    breaks: Tuple[TimeRange, ...] = field(default_factory=tuple)

    @property
    def open_minutes(self) -> int:
        return to_minutes(self.open_time)

    @property
    def close_minutes(self) -> int:
        return to_minutes(self.close_time)

    def contains(self, start: int, end: int) -> bool:
        """True when [start, end) lies inside opening hours, ignoring breaks."""
        return self.open_minutes <= start and end <= self.close_minutes

    def break_overlapping(self, start: int, end: int) -> Optional[TimeRange]:
        for pause in self.breaks:
            if pause.overlaps(start, end):
                return pause
        return None

    def candidate_starts(self, duration: int, step: int) -> Iterator[int]:
        """Starts on the ``step`` grid from opening whose slot fits and avoids breaks."""
        start = self.open_minutes
        while start + duration <= self.close_minutes:
            if self.break_overlapping(start, start + duration) is None:
                yield start
            start += step

    def to_payload(self) -> dict[str, Any]:
        return {
            "open": format_clock(self.open_time),
            "close": format_clock(self.close_time),
            "breaks": [pause.to_payload() for pause in self.breaks],
        }


@dataclass(frozen=True)
class ClosedDay:
    reason: str = "no_hours"

    def to_payload(self) -> dict[str, Any]:
        return {"closed": True, "reason": self.reason}


ResolvedWindow = Union[OpenWindow, ClosedDay]


def window_from_hours(hours: Optional[Mapping[str, Any]]) -> ResolvedWindow:
    """Build a window from one weekday entry ``{"open": "09:00", "close": "17:00"}``."""
    if not isinstance(hours, Mapping):
        return ClosedDay()
    opens = parse_clock(hours.get("open"))
    closes = parse_clock(hours.get("close"))
    if opens is None or closes is None or opens >= closes:
        return ClosedDay()
    return OpenWindow(open_time=opens, close_time=closes)


def _override_type(override: DayOverride) -> Optional[AvailabilityExceptionType]:
    try:
        return AvailabilityExceptionType(override.type)
    except ValueError:
        return None


def _override_range(override: DayOverride) -> Optional[TimeRange]:
    if override.start_time is None or override.end_time is None:
        return None
    start, end = to_minutes(override.start_time), to_minutes(override.end_time)
    if start >= end:
        return None
    return TimeRange(start, end)


def resolve_window(
    standing_hours: Optional[Mapping[str, Any]],
    overrides: Sequence[DayOverride] = (),
) -> ResolvedWindow:
    """
    Effective open window for one date.

    Standing weekday hours are applied first, then the date's overrides:

    - a blocking override (vacation, sick, blocked) without a range closes the day;
    - a blocking override with a range becomes a break, narrowing the window
      when it touches an edge;
    - an ``available`` override with a range replaces the standing hours.

    Never raises; unreadable hours resolve to ``ClosedDay("no_hours")``.
    """
    typed = []
    for override in overrides:
        kind = _override_type(override)
        if kind is not None:
            typed.append((kind, override))

    for kind, override in typed:
        if kind.is_blocking and _override_range(override) is None:
            return ClosedDay(reason=kind.value)

    window = window_from_hours(standing_hours)
    for kind, override in typed:
        extra = _override_range(override)
        if kind is AvailabilityExceptionType.AVAILABLE and extra is not None:
            window = OpenWindow(
                open_time=from_minutes(extra.start), close_time=from_minutes(extra.end)
            )
            break

    if isinstance(window, ClosedDay):
        return window

    opens, closes = window.open_minutes, window.close_minutes
    breaks = []
    for kind, override in typed:
        blocked = _override_range(override)
        if not kind.is_blocking or blocked is None or not blocked.overlaps(opens, closes):
            continue
        breaks.append(blocked)
        if blocked.start <= opens:
            opens = max(opens, blocked.end)
        elif blocked.end >= closes:
            closes = min(closes, blocked.start)

    if opens >= closes:
        return ClosedDay(reason="blocked")

    # Edge blocks stay listed so a slot touching them reads as a break, not as closed.
    ordered = tuple(sorted(breaks, key=lambda b: b.start))
    return OpenWindow(open_time=from_minutes(opens), close_time=from_minutes(closes), breaks=ordered)
