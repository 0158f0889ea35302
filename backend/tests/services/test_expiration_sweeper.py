"""
Tests for the ExpirationSweeper.

NOW is Monday 2026-03-02 08:00 and the sweep runs with a 24 hour timeout.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest

from goreserve.core.enums import BookingStatus, PaymentStatus
from goreserve.models import Booking, BookingActivityLog
from goreserve.services.expiration_sweeper import ExpirationSweeper

NOW = datetime(2026, 3, 2, 8, 0)
TODAY = date(2026, 3, 2)
TOMORROW = date(2026, 3, 3)


@pytest.fixture
def business(make_business):
    return make_business()


@pytest.fixture
def service(make_service, business):
    return make_service(business)


@pytest.fixture
def sweeper(db, releaser, notifier, lock_manager):
    return ExpirationSweeper(db, releaser=releaser, notifier=notifier, lock_manager=lock_manager)


@pytest.fixture
def unpaid(make_booking, service):
    def _make(on=TOMORROW, start=time(10, 0), age_hours=30, **kwargs):
        return make_booking(
            service,
            on=on,
            start=start,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            created_at=NOW - timedelta(hours=age_hours),
            **kwargs,
        )

    return _make


@pytest.fixture
def scenario(unpaid, make_booking, service):
    """Two eligible reservations among ones that must be left alone."""
    return {
        "tomorrow": unpaid(age_hours=31, payment_intent_id="pi_tomorrow"),
        "later_today": unpaid(on=TODAY, start=time(15, 0), age_hours=30),
        "already_started": unpaid(on=TODAY, start=time(7, 0), age_hours=30),
        "too_recent": unpaid(start=time(12, 0), age_hours=10),
        "paid": make_booking(service, start=time(14, 0), created_at=NOW - timedelta(hours=40)),
    }


def statuses(db):
    return {b.booking_ref: b.status for b in db.query(Booking).all()}


class TestEligibility:
    def test_only_old_unpaid_future_reservations(self, sweeper, scenario):
        eligible = sweeper.find_eligible(24, NOW)
        assert [b.booking_ref for b in eligible] == [
            scenario["tomorrow"].booking_ref,
            scenario["later_today"].booking_ref,
        ]

    def test_is_eligible_matches_query(self, sweeper, scenario):
        expected = {scenario["tomorrow"].id, scenario["later_today"].id}
        for booking in scenario.values():
            assert ExpirationSweeper.is_eligible(booking, 24, NOW) is (booking.id in expected)

    def test_age_boundary_is_inclusive(self, sweeper, unpaid):
        booking = unpaid(age_hours=24)
        assert [b.id for b in sweeper.find_eligible(24, NOW)] == [booking.id]


class TestSweep:
    def test_cancels_eligible_reservations(self, db, sweeper, scenario, releaser, business):
        report = sweeper.sweep(expiration_hours=24, now=NOW)

        assert report.cancelled_refs == (
            scenario["tomorrow"].booking_ref,
            scenario["later_today"].booking_ref,
        )
        assert report.failed_refs == ()
        assert report.total_amount_released == Decimal("100.00")

        db.expire_all()
        current = statuses(db)
        assert current[scenario["tomorrow"].booking_ref] == "cancelled"
        assert current[scenario["later_today"].booking_ref] == "cancelled"
        assert current[scenario["already_started"].booking_ref] == "pending"
        assert current[scenario["too_recent"].booking_ref] == "pending"
        assert current[scenario["paid"].booking_ref] == "confirmed"

        cancelled = db.get(Booking, scenario["tomorrow"].id)
        assert cancelled.cancelled_by == "system"
        assert cancelled.cancelled_at == NOW
        assert cancelled.cancellation_reason == "Payment timeout - booking expired after 24 hours"

        releaser.release.assert_called_once_with("pi_tomorrow", scenario["tomorrow"].booking_ref)
        db.refresh(business)
        assert business.last_cleanup_at == NOW

    def test_writes_one_audit_entry_per_cancellation(self, db, sweeper, scenario):
        sweeper.sweep(expiration_hours=24, now=NOW)

        logs = db.query(BookingActivityLog).all()
        assert len(logs) == 2
        assert {log.action for log in logs} == {"auto_cancelled"}
        assert {log.performed_by for log in logs} == {"system"}
        assert logs[0].metadata_json["expiration_hours"] == 24

    def test_dry_run_reports_without_changes(self, db, sweeper, scenario, releaser, business):
        before = statuses(db)

        report = sweeper.sweep(expiration_hours=24, dry_run=True, now=NOW)

        assert report.dry_run is True
        assert report.eligible_refs == (
            scenario["tomorrow"].booking_ref,
            scenario["later_today"].booking_ref,
        )
        assert report.cancelled_refs == ()
        db.expire_all()
        assert statuses(db) == before
        assert db.query(BookingActivityLog).count() == 0
        releaser.release.assert_not_called()
        db.refresh(business)
        assert business.last_cleanup_at is None

    def test_second_run_is_a_no_op(self, sweeper, scenario):
        sweeper.sweep(expiration_hours=24, now=NOW)
        report = sweeper.sweep(expiration_hours=24, now=NOW)
        assert report.eligible_count == 0
        assert report.cancelled_count == 0

    def test_failure_is_isolated_to_one_reservation(self, db, sweeper, scenario, monkeypatch):
        broken_id = scenario["tomorrow"].id
        write = sweeper.audit_repository.write

        def flaky_write(**kwargs):
            if kwargs["booking_id"] == broken_id:
                raise RuntimeError("audit insert failed")
            return write(**kwargs)

        monkeypatch.setattr(sweeper.audit_repository, "write", flaky_write)

        report = sweeper.sweep(expiration_hours=24, now=NOW)

        assert report.failed_refs == (scenario["tomorrow"].booking_ref,)
        assert report.cancelled_refs == (scenario["later_today"].booking_ref,)
        assert report.has_failures
        db.expire_all()
        assert db.get(Booking, broken_id).status == "pending"
        assert db.query(BookingActivityLog).filter_by(booking_id=broken_id).count() == 0

    def test_reservation_paid_meanwhile_is_skipped(self, db, sweeper, scenario, monkeypatch):
        candidates = sweeper.find_eligible(24, NOW)
        db.query(Booking).filter(Booking.id == scenario["tomorrow"].id).update(
            {"status": "confirmed", "payment_status": "paid"}, synchronize_session=False
        )
        db.commit()
        monkeypatch.setattr(sweeper, "find_eligible", lambda hours, now: candidates)

        report = sweeper.sweep(expiration_hours=24, now=NOW)

        assert report.eligible_count == 2
        assert report.cancelled_refs == (scenario["later_today"].booking_ref,)
        assert report.failed_refs == ()

    def test_release_and_notify_failures_are_counted(
        self, sweeper, scenario, releaser, notifier
    ):
        releaser.release.side_effect = RuntimeError("stripe down")
        notifier.booking_expired.side_effect = RuntimeError("broker down")

        report = sweeper.sweep(expiration_hours=24, notify=True, now=NOW)

        assert report.cancelled_count == 2
        assert report.release_failures == 1
        assert report.notify_failures == 2
        assert not report.has_failures

    def test_notifications_only_when_requested(self, sweeper, scenario, notifier):
        sweeper.sweep(expiration_hours=24, now=NOW)
        notifier.booking_expired.assert_not_called()

        sweeper.sweep(expiration_hours=0, notify=True, now=NOW)
        notifier.booking_expired.assert_called_once()
        assert notifier.booking_expired.call_args.args[1] == 0

    def test_negative_hours_rejected(self, sweeper):
        with pytest.raises(ValueError):
            sweeper.sweep(expiration_hours=-1, now=NOW)

    def test_payload(self, sweeper, scenario):
        payload = sweeper.sweep(expiration_hours=24, now=NOW).to_payload()
        assert payload["cancelled_count"] == 2
        assert payload["total_amount_released"] == "100.00"
        assert payload["dry_run"] is False
