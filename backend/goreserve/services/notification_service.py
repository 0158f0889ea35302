# backend/goreserve/services/notification_service.py
"""
Booking notifications.

The engine does not deliver email, SMS or push messages. It enqueues a
Celery task by name on the notifications queue; a worker outside this
package owns delivery.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from ..core.config import settings
from ..models.booking import Booking
from ..tasks.enqueue import enqueue_task

logger = logging.getLogger(__name__)

BOOKING_EXPIRED_TASK = "notifications.booking_expired"
BOOKING_CANCELLED_TASK = "notifications.booking_cancelled"


class BookingNotifier(Protocol):
    def booking_expired(self, booking: Booking, expiration_hours: int) -> None: ...

    def booking_cancelled(self, booking: Booking) -> None: ...


class CeleryBookingNotifier:
    def __init__(self, queue: Optional[str] = None):
        self.queue = queue or settings.notifications_queue

    @staticmethod
    def _payload(booking: Booking) -> Dict[str, Any]:
        return {
            "booking_ref": booking.booking_ref,
            "user_id": booking.user_id,
            "business_id": booking.business_id,
            "booking_date": booking.booking_date.isoformat(),
            "start_time": booking.start_time.strftime("%H:%M"),
            "cancelled_by": booking.cancelled_by,
            "cancellation_reason": booking.cancellation_reason,
        }

    def booking_expired(self, booking: Booking, expiration_hours: int) -> None:
        payload = {**self._payload(booking), "expiration_hours": expiration_hours}
        enqueue_task(BOOKING_EXPIRED_TASK, kwargs={"payload": payload}, queue=self.queue)
        logger.info(f"Queued expiration notice for booking {booking.booking_ref}")

    def booking_cancelled(self, booking: Booking) -> None:
        enqueue_task(
            BOOKING_CANCELLED_TASK, kwargs={"payload": self._payload(booking)}, queue=self.queue
        )
        logger.info(f"Queued cancellation notice for booking {booking.booking_ref}")
