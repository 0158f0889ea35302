# backend/goreserve/services/expiration_sweeper.py
"""
Expiration Sweeper for GoReserve

Cancels reservations that were never paid for. A reservation is eligible
when it is pending with a pending payment, was created at least
``expiration_hours`` ago, and its slot has not started yet.

Each eligible reservation is handled on its own: under its own lock and in
its own transaction the status change and the audit entry are committed
together. A failure there rolls back that reservation only and the sweep
moves on. Releasing the payment hold and notifying the customer happen
after the commit and are best-effort.
"""

from datetime import datetime, timedelta
from decimal import Decimal
import logging
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from ..core.booking_lock import BookingLockManager, booking_lock_key, get_lock_manager
from ..core.config import settings
from ..core.enums import BookingStatus, CancelledBy, PaymentStatus
from ..core.time_utils import local_now
from ..domain.sweep import SweepReport
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.audit_repository import AuditRepository
from ..repositories.availability_repository import AvailabilityRepository
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .notification_service import BookingNotifier, CeleryBookingNotifier
from .payment_authorization_service import (
    PaymentAuthorizationReleaser,
    StripeAuthorizationReleaser,
)

logger = logging.getLogger(__name__)

AUTO_CANCELLED_ACTION = "auto_cancelled"


def expiration_reason(expiration_hours: int) -> str:
    return f"Payment timeout - booking expired after {expiration_hours} hours"


class ExpirationSweeper(BaseService):
    def __init__(
        self,
        db: Session,
        booking_repository: Optional[BookingRepository] = None,
        audit_repository: Optional[AuditRepository] = None,
        availability_repository: Optional[AvailabilityRepository] = None,
        releaser: Optional[PaymentAuthorizationReleaser] = None,
        notifier: Optional[BookingNotifier] = None,
        lock_manager: Optional[BookingLockManager] = None,
    ):
        super().__init__(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.audit_repository = audit_repository or RepositoryFactory.create_audit_repository(db)
        self.availability_repository = (
            availability_repository or RepositoryFactory.create_availability_repository(db)
        )
        self.releaser = releaser or StripeAuthorizationReleaser()
        self.notifier = notifier or CeleryBookingNotifier()
        self.lock_manager = lock_manager or get_lock_manager()

    @staticmethod
    def is_eligible(booking: Booking, expiration_hours: int, now: datetime) -> bool:
        if booking.status != BookingStatus.PENDING.value:
            return False
        if booking.payment_status != PaymentStatus.PENDING.value:
            return False
        if booking.created_at is None or booking.created_at > now - timedelta(hours=expiration_hours):
            return False
        today = now.date()
        if booking.booking_date > today:
            return True
        return booking.booking_date == today and booking.start_time > now.time()

    def find_eligible(self, expiration_hours: int, now: datetime) -> List[Booking]:
        return self.booking_repository.find_expiration_candidates(expiration_hours, now)

    @BaseService.measure_operation("sweep_expired_reservations")
    def sweep(
        self,
        expiration_hours: Optional[int] = None,
        dry_run: bool = False,
        notify: bool = False,
        now: Optional[datetime] = None,
    ) -> SweepReport:
        """
        Cancel every eligible reservation.

        Args:
            expiration_hours: Minimum age of an unpaid reservation
            dry_run: Report the eligible set without changing anything
            notify: Queue a customer notification for each cancellation
            now: Current local time

        Returns:
            SweepReport with cancelled and failed references
        """
        hours = settings.booking_expiration_hours if expiration_hours is None else expiration_hours
        if hours < 0:
            raise ValueError("expiration_hours must not be negative")
        now = now or local_now()

        candidates = self.find_eligible(hours, now)
        targets = [(booking.id, booking.booking_ref) for booking in candidates]
        eligible_refs = tuple(ref for _, ref in targets)
        self.logger.info(
            f"Expiration sweep found {len(targets)} eligible reservations "
            f"(hours={hours}, dry_run={dry_run})"
        )

        if dry_run:
            return SweepReport(expiration_hours=hours, dry_run=True, eligible_refs=eligible_refs)

        cancelled: List[str] = []
        failed: List[str] = []
        businesses: Set[str] = set()
        total = Decimal("0.00")
        release_failures = 0
        notify_failures = 0

        for booking_id, booking_ref in targets:
            try:
                booking = self._expire_one(booking_id, hours, now)
            except Exception as exc:
                failed.append(booking_ref)
                self.logger.error(
                    f"Failed to expire booking {booking_ref}: {exc}",
                    exc_info=True,
                    extra={
                        "booking_ref": booking_ref,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if booking is None:
                self.logger.info(f"Booking {booking_ref} no longer eligible, skipped")
                continue

            cancelled.append(booking_ref)
            businesses.add(booking.business_id)
            total += Decimal(booking.amount or 0)

            if not self._release_hold(booking):
                release_failures += 1
            if notify and not self._notify(booking, hours):
                notify_failures += 1

        self._stamp_businesses(businesses, now)

        prometheus_metrics.record_sweep_outcome("cancelled", len(cancelled))
        prometheus_metrics.record_sweep_outcome("failed", len(failed))
        prometheus_metrics.record_sweep_outcome("release_failed", release_failures)
        prometheus_metrics.record_sweep_outcome("notify_failed", notify_failures)

        report = SweepReport(
            expiration_hours=hours,
            dry_run=False,
            eligible_refs=eligible_refs,
            cancelled_refs=tuple(cancelled),
            failed_refs=tuple(failed),
            total_amount_released=total.quantize(Decimal("0.01")),
            release_failures=release_failures,
            notify_failures=notify_failures,
        )
        self.logger.info(
            f"Expiration sweep finished: {report.cancelled_count} cancelled, "
            f"{report.failed_count} failed, {report.total_amount_released} released"
        )
        return report

    def _expire_one(self, booking_id: str, expiration_hours: int, now: datetime) -> Optional[Booking]:
        """Cancel and audit one reservation atomically. Returns None if it stopped qualifying."""
        with self.lock_manager.hold(booking_lock_key(booking_id)):
            with self.transaction():
                booking = self.booking_repository.get_for_update(booking_id)
                if booking is None or not self.is_eligible(booking, expiration_hours, now):
                    return None
                booking.cancel(CancelledBy.SYSTEM, reason=expiration_reason(expiration_hours), at=now)
                self.audit_repository.write(
                    booking_id=booking.id,
                    action=AUTO_CANCELLED_ACTION,
                    performed_by=CancelledBy.SYSTEM.value,
                    description="Booking automatically cancelled due to payment timeout",
                    metadata={
                        "expiration_hours": expiration_hours,
                        "created_at": booking.created_at.isoformat(sep=" ", timespec="seconds"),
                        "expired_at": now.isoformat(sep=" ", timespec="seconds"),
                    },
                    at=now,
                )
            return booking

    def _release_hold(self, booking: Booking) -> bool:
        if not booking.payment_intent_id:
            return True
        try:
            self.releaser.release(booking.payment_intent_id, booking.booking_ref)
            return True
        except Exception as exc:
            self.logger.warning(
                f"Failed to cancel payment intent for booking {booking.booking_ref}",
                extra={
                    "booking_ref": booking.booking_ref,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return False

    def _notify(self, booking: Booking, expiration_hours: int) -> bool:
        try:
            self.notifier.booking_expired(booking, expiration_hours)
            return True
        except Exception as exc:
            self.logger.error(
                "Failed to send expiration notification",
                extra={
                    "booking_ref": booking.booking_ref,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            return False

    def _stamp_businesses(self, business_ids: Set[str], now: datetime) -> None:
        if not business_ids:
            return
        try:
            with self.transaction():
                self.availability_repository.stamp_last_cleanup(business_ids, now)
        except Exception as exc:
            self.logger.error(
                "Failed to update business cleanup time",
                extra={"business_ids": sorted(business_ids), "error": str(exc)},
            )
