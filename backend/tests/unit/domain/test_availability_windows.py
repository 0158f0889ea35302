"""
Unit tests for open-window resolution (goreserve.domain.availability).
"""

from datetime import time
from types import SimpleNamespace

from goreserve.domain.availability import (
    ClosedDay,
    OpenWindow,
    TimeRange,
    resolve_window,
    window_from_hours,
)

HOURS = {"open": "09:00", "close": "17:00"}


def override(type: str, start=None, end=None):
    return SimpleNamespace(type=type, start_time=start, end_time=end)


class TestWindowFromHours:
    def test_missing_hours_are_closed(self):
        assert window_from_hours(None) == ClosedDay(reason="no_hours")

    def test_unreadable_hours_are_closed(self):
        assert isinstance(window_from_hours({"open": "nine", "close": "17:00"}), ClosedDay)
        assert isinstance(window_from_hours({"open": "17:00", "close": "09:00"}), ClosedDay)

    def test_accepts_seconds(self):
        window = window_from_hours({"open": "09:00:00", "close": "17:30:00"})
        assert window == OpenWindow(open_time=time(9, 0), close_time=time(17, 30))


class TestResolveWindow:
    def test_standing_hours_without_overrides(self):
        window = resolve_window(HOURS)
        assert isinstance(window, OpenWindow)
        assert (window.open_minutes, window.close_minutes) == (540, 1020)
        assert window.breaks == ()

    def test_full_day_vacation_closes_the_day(self):
        assert resolve_window(HOURS, [override("vacation")]) == ClosedDay(reason="vacation")

    def test_full_day_block_wins_over_extra_hours(self):
        window = resolve_window(
            HOURS, [override("available", time(18, 0), time(20, 0)), override("sick")]
        )
        assert window == ClosedDay(reason="sick")

    def test_blocked_range_becomes_break(self):
        window = resolve_window(HOURS, [override("blocked", time(12, 0), time(13, 0))])
        assert isinstance(window, OpenWindow)
        assert (window.open_minutes, window.close_minutes) == (540, 1020)
        assert window.breaks == (TimeRange(720, 780),)

    def test_block_at_opening_narrows_window(self):
        window = resolve_window(HOURS, [override("blocked", time(9, 0), time(10, 0))])
        assert window.open_time == time(10, 0)
        assert window.close_time == time(17, 0)
        assert window.break_overlapping(570, 630) == TimeRange(540, 600)

    def test_block_at_closing_narrows_window(self):
        window = resolve_window(HOURS, [override("blocked", time(16, 0), time(18, 0))])
        assert window.close_time == time(16, 0)

    def test_block_covering_everything_is_closed(self):
        window = resolve_window(HOURS, [override("blocked", time(8, 0), time(18, 0))])
        assert window == ClosedDay(reason="blocked")

    def test_available_override_replaces_hours(self):
        window = resolve_window(None, [override("available", time(18, 0), time(21, 0))])
        assert window == OpenWindow(open_time=time(18, 0), close_time=time(21, 0))

    def test_blocked_range_outside_hours_is_ignored(self):
        window = resolve_window(HOURS, [override("blocked", time(19, 0), time(20, 0))])
        assert window.breaks == ()

    def test_unknown_override_type_is_ignored(self):
        window = resolve_window(HOURS, [override("holiday")])
        assert isinstance(window, OpenWindow)


class TestOpenWindow:
    def test_contains_is_inclusive_of_both_edges(self):
        window = OpenWindow(open_time=time(9, 0), close_time=time(17, 0))
        assert window.contains(540, 600)
        assert window.contains(960, 1020)
        assert not window.contains(990, 1050)
        assert not window.contains(510, 570)

    def test_candidate_starts_skip_breaks(self):
        window = OpenWindow(
            open_time=time(9, 0), close_time=time(12, 0), breaks=(TimeRange(600, 630),)
        )
        assert list(window.candidate_starts(60, 30)) == [540, 630, 660]

    def test_payload_uses_clock_strings(self):
        window = OpenWindow(
            open_time=time(9, 0), close_time=time(17, 0), breaks=(TimeRange(720, 780),)
        )
        assert window.to_payload() == {
            "open": "09:00",
            "close": "17:00",
            "breaks": [{"start": "12:00", "end": "13:00"}],
        }
