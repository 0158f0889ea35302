"""
Clock and time-of-day helpers for the scheduling engine.

All values handled by the engine are naive and already expressed in the
business's local time; nothing here converts between zones.
"""

from datetime import date, datetime, time
from typing import Any, Optional

MINUTES_PER_DAY = 24 * 60

WEEKDAY_KEYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def local_now() -> datetime:
    """Current wall-clock time in the business's local time."""
    return datetime.now()


def weekday_key(target_date: date) -> str:
    """Return the lowercase weekday name used as a working-hours key."""
    return WEEKDAY_KEYS[target_date.weekday()]


def to_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of to_minutes, for values inside a single day."""
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return time(minutes // 60, minutes % 60)


def parse_clock(value: Any) -> Optional[time]:
    """
    Parse ``HH:MM`` / ``HH:MM:SS`` strings (or pass through ``time`` values).

    Returns None for anything that cannot be read as a time of day.
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def format_clock(value: time) -> str:
    return value.strftime("%H:%M")
