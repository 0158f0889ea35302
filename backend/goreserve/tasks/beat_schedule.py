# backend/goreserve/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for GoReserve.

The expiration sweep runs on a fixed interval; each run only touches
reservations that are already eligible, so overlapping or missed runs are
harmless.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from goreserve.core.config import Settings, settings


def get_beat_schedule(config: Optional[Settings] = None) -> Dict[str, Dict[str, Any]]:
    """
    Build the beat schedule from settings.

    Args:
        config: Settings to read (defaults to the process settings)

    Returns:
        Beat schedule mapping
    """
    config = config or settings
    return {
        "sweep-expired-reservations": {
            "task": "goreserve.tasks.expiration_tasks.sweep_expired_reservations",
            "schedule": timedelta(minutes=config.expiration_sweep_interval_minutes),
            "kwargs": {
                "expiration_hours": config.booking_expiration_hours,
                "notify": config.expiration_sweep_notify,
            },
            "options": {
                "queue": "maintenance",
                # A run that waited longer than one interval is superseded by the next
                "expires": config.expiration_sweep_interval_minutes * 60,
            },
        },
    }
