from datetime import date, time
from unittest.mock import MagicMock, patch

from goreserve.services.notification_service import (
    BOOKING_CANCELLED_TASK,
    BOOKING_EXPIRED_TASK,
    CeleryBookingNotifier,
)


def booking_stub():
    return MagicMock(
        booking_ref="BKREF0001",
        user_id="customer-1",
        business_id="biz-1",
        booking_date=date(2026, 3, 3),
        start_time=time(10, 0),
        cancelled_by="system",
        cancellation_reason="Payment timeout - booking expired after 2 hours",
    )


@patch("goreserve.services.notification_service.enqueue_task")
def test_expiration_notice_is_queued_by_name(mock_enqueue):
    CeleryBookingNotifier(queue="notify").booking_expired(booking_stub(), 2)

    mock_enqueue.assert_called_once()
    name = mock_enqueue.call_args.args[0]
    payload = mock_enqueue.call_args.kwargs["kwargs"]["payload"]
    assert name == BOOKING_EXPIRED_TASK
    assert mock_enqueue.call_args.kwargs["queue"] == "notify"
    assert payload["booking_ref"] == "BKREF0001"
    assert payload["start_time"] == "10:00"
    assert payload["expiration_hours"] == 2


@patch("goreserve.services.notification_service.enqueue_task")
def test_cancellation_notice(mock_enqueue):
    CeleryBookingNotifier().booking_cancelled(booking_stub())

    assert mock_enqueue.call_args.args[0] == BOOKING_CANCELLED_TASK
    assert mock_enqueue.call_args.kwargs["queue"] == "notifications"
    assert "expiration_hours" not in mock_enqueue.call_args.kwargs["kwargs"]["payload"]
