# backend/goreserve/services/booking_lifecycle_service.py
"""
Booking Lifecycle Service for GoReserve

Status transitions after a reservation exists: payment confirmation,
cancellation, completion and no-show. Each transition re-reads the booking
under its keyed lock and commits the status change together with an
activity log entry. Payment release and customer notification on
cancellation happen after the commit and are best-effort.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.booking_lock import BookingLockManager, booking_lock_key, get_lock_manager
from ..core.enums import BookingStatus, CancelledBy, PaymentStatus
from ..core.exceptions import BusinessRuleException, NotFoundException
from ..core.time_utils import local_now
from ..models.booking import Booking
from ..repositories.audit_repository import AuditRepository
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .notification_service import BookingNotifier, CeleryBookingNotifier
from .payment_authorization_service import (
    PaymentAuthorizationReleaser,
    StripeAuthorizationReleaser,
)

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class BookingLifecycleService(BaseService):
    def __init__(
        self,
        db: Session,
        booking_repository: Optional[BookingRepository] = None,
        audit_repository: Optional[AuditRepository] = None,
        releaser: Optional[PaymentAuthorizationReleaser] = None,
        notifier: Optional[BookingNotifier] = None,
        lock_manager: Optional[BookingLockManager] = None,
    ):
        super().__init__(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.audit_repository = audit_repository or RepositoryFactory.create_audit_repository(db)
        self.releaser = releaser or StripeAuthorizationReleaser()
        self.notifier = notifier or CeleryBookingNotifier()
        self.lock_manager = lock_manager or get_lock_manager()

    def _require(self, booking_ref: str) -> Booking:
        booking = self.booking_repository.get_by_ref(booking_ref)
        if booking is None:
            raise NotFoundException(f"Booking {booking_ref} not found", code="BOOKING_NOT_FOUND")
        return booking

    def _transition(
        self,
        booking_ref: str,
        action: str,
        performed_by: str,
        apply: Callable[[Booking], None],
        now: datetime,
        description: Optional[str] = None,
    ) -> Booking:
        """Apply a status change and its activity entry atomically under the booking lock."""
        booking_id = self._require(booking_ref).id
        with self.lock_manager.hold(booking_lock_key(booking_id)):
            with self.transaction():
                booking = self.booking_repository.get_for_update(booking_id)
                if booking is None:
                    raise NotFoundException(
                        f"Booking {booking_ref} not found", code="BOOKING_NOT_FOUND"
                    )
                before = booking.audit_snapshot()
                apply(booking)
                self.audit_repository.write(
                    booking_id=booking.id,
                    action=action,
                    performed_by=performed_by,
                    description=description,
                    metadata={"before": before, "after": booking.audit_snapshot()},
                    at=now,
                )
        self.logger.info(
            f"Booking {booking_ref} {action}",
            extra={"booking_ref": booking_ref, "action": action, "performed_by": performed_by},
        )
        return booking

    @BaseService.measure_operation("confirm_payment")
    def confirm_payment(
        self,
        booking_ref: str,
        payment_intent_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """Mark a pending booking paid and confirmed."""
        now = now or local_now()

        def apply(booking: Booking) -> None:
            if booking.status != BookingStatus.PENDING.value:
                raise BusinessRuleException(
                    f"Booking {booking.booking_ref} is not awaiting payment",
                    code="BOOKING_NOT_PENDING",
                    details={"booking_ref": booking.booking_ref, "status": booking.status},
                )
            if payment_intent_id:
                booking.payment_intent_id = payment_intent_id
            booking.confirm(at=now)

        return self._transition(
            booking_ref,
            "payment_confirmed",
            CancelledBy.SYSTEM.value,
            apply,
            now,
            description="Payment received, booking confirmed",
        )

    def ensure_cancellable(
        self, booking: Booking, cancelled_by: CancelledBy, now: datetime
    ) -> None:
        """
        Enforce the cancellation policy.

        Customers may cancel a pending or confirmed booking up to the
        service's cancellation_hours before it starts. Businesses, admins
        and the system are not bound by the window.

        Raises:
            BusinessRuleException: the booking cannot be cancelled
        """
        if booking.status not in CANCELLABLE_STATUSES:
            raise BusinessRuleException(
                f"Booking cannot be cancelled - current status: {booking.status}",
                code="BOOKING_NOT_CANCELLABLE",
                details={"booking_ref": booking.booking_ref, "status": booking.status},
            )
        if cancelled_by != CancelledBy.USER:
            return
        hours = booking.service.effective_cancellation_hours
        if booking.starts_at - now < timedelta(hours=hours):
            raise BusinessRuleException(
                f"Bookings must be cancelled at least {hours} hours in advance",
                code="CANCELLATION_WINDOW_CLOSED",
                details={"booking_ref": booking.booking_ref, "cancellation_hours": hours},
            )

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        booking_ref: str,
        cancelled_by: CancelledBy,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
        notify: bool = True,
    ) -> Booking:
        """
        Cancel a booking.

        Args:
            booking_ref: Public booking reference
            cancelled_by: Who is cancelling
            reason: Optional cancellation reason
            now: Current local time
            notify: Queue a customer notification after the commit

        Returns:
            Cancelled booking

        Raises:
            NotFoundException: If booking not found
            BusinessRuleException: If the policy does not allow the cancellation
        """
        now = now or local_now()

        def apply(booking: Booking) -> None:
            self.ensure_cancellable(booking, cancelled_by, now)
            booking.cancel(cancelled_by, reason=reason, at=now)

        booking = self._transition(
            booking_ref, "cancelled", cancelled_by.value, apply, now, description=reason
        )

        if booking.payment_intent_id and booking.payment_status != PaymentStatus.PAID.value:
            try:
                self.releaser.release(booking.payment_intent_id, booking.booking_ref)
            except Exception as exc:
                self.logger.warning(
                    f"Failed to cancel payment intent for booking {booking.booking_ref}",
                    extra={
                        "booking_ref": booking.booking_ref,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
        if notify:
            try:
                self.notifier.booking_cancelled(booking)
            except Exception as exc:
                self.logger.error(
                    "Failed to send cancellation notification",
                    extra={
                        "booking_ref": booking.booking_ref,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
        return booking

    @BaseService.measure_operation("mark_completed")
    def mark_completed(
        self, booking_ref: str, performed_by: str = "business", now: Optional[datetime] = None
    ) -> Booking:
        now = now or local_now()
        return self._transition(
            booking_ref,
            "completed",
            performed_by,
            lambda booking: booking.complete(at=now),
            now,
        )

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(
        self, booking_ref: str, performed_by: str = "business", now: Optional[datetime] = None
    ) -> Booking:
        now = now or local_now()

        def apply(booking: Booking) -> None:
            if now < booking.starts_at:
                raise BusinessRuleException(
                    "A no-show can only be recorded once the booking has started",
                    code="BOOKING_NOT_STARTED",
                    details={"booking_ref": booking.booking_ref},
                )
            booking.mark_no_show()

        return self._transition(booking_ref, "no_show", performed_by, apply, now)

    def history(self, booking_ref: str) -> List[Dict[str, Any]]:
        """Activity log entries for a booking, oldest first."""
        booking = self._require(booking_ref)
        return [
            {
                "action": entry.action,
                "performed_by": entry.performed_by,
                "description": entry.description,
                "created_at": entry.created_at.isoformat(sep=" ", timespec="seconds"),
            }
            for entry in self.audit_repository.list_for_booking(booking.id)
        ]
