# backend/goreserve/models/booking.py
"""
Booking model for the GoReserve scheduling engine.

A booking reserves [start_time, end_time) on booking_date for a service
at a business, optionally with a specific staff member. The end time is
derived from the service duration when the booking is created and stored
so later duration changes do not move existing reservations.

Bookings expose a public ``booking_ref``; the ULID primary key never
leaves the engine.
"""

from datetime import date, datetime
import logging
import secrets
import string
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import BookingStatus, CancelledBy, PaymentStatus
from ..core.exceptions import IllegalTransitionException
from ..database import Base

logger = logging.getLogger(__name__)

_REF_ALPHABET = string.ascii_uppercase + string.digits

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
            BookingStatus.COMPLETED,
            BookingStatus.NO_SHOW,
        }
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW}
    ),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}


def generate_booking_ref() -> str:
    return "BK" + "".join(secrets.choice(_REF_ALPHABET) for _ in range(8))


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    booking_ref = Column(String(16), nullable=False, unique=True, default=generate_booking_ref)

    user_id = Column(String(64), nullable=False, index=True)
    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("services.id"), nullable=False)
    staff_id = Column(String(26), ForeignKey("staff.id"), nullable=True)

    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False, default=0)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_intent_id = Column(String(255), nullable=True, comment="Held payment authorization")

    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(String(20), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)
    confirmed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    business = relationship("Business")
    service = relationship("Service")
    staff = relationship("Staff")
    activity_logs = relationship(
        "BookingActivityLog", back_populates="booking", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'partially_paid', 'refunded')",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint("amount >= 0", name="check_booking_amount_non_negative"),
        CheckConstraint("start_time < end_time", name="check_booking_time_order"),
        Index("idx_bookings_business_date", "business_id", "booking_date"),
        Index("idx_bookings_staff_date", "staff_id", "booking_date"),
        Index("idx_bookings_expiration", "status", "payment_status", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.booking_ref}: business={self.business_id}, "
            f"staff={self.staff_id}, date={self.booking_date}, "
            f"time={self.start_time}-{self.end_time}, status={self.status}>"
        )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.booking_date, self.start_time)

    def can_transition_to(self, target: BookingStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status_enum]

    def transition_to(self, target: BookingStatus) -> None:
        if not self.can_transition_to(target):
            raise IllegalTransitionException(self.booking_ref, self.status, target.value)
        self.status = target.value

    def cancel(
        self,
        cancelled_by: CancelledBy,
        reason: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> None:
        """Cancel this booking. Cancellation is terminal."""
        self.transition_to(BookingStatus.CANCELLED)
        self.cancelled_at = at or datetime.now()
        self.cancelled_by = cancelled_by.value
        self.cancellation_reason = reason
        logger.info(f"Booking {self.booking_ref} cancelled by {cancelled_by.value}")

    def confirm(self, at: Optional[datetime] = None) -> None:
        self.transition_to(BookingStatus.CONFIRMED)
        self.payment_status = PaymentStatus.PAID.value
        self.confirmed_at = at or datetime.now()

    def complete(self, at: Optional[datetime] = None) -> None:
        self.transition_to(BookingStatus.COMPLETED)
        self.completed_at = at or datetime.now()

    def mark_no_show(self) -> None:
        self.transition_to(BookingStatus.NO_SHOW)

    def audit_snapshot(self) -> Dict[str, Any]:
        return {
            "booking_ref": self.booking_ref,
            "status": self.status,
            "payment_status": self.payment_status,
            "booking_date": self.booking_date.isoformat() if isinstance(self.booking_date, date) else None,
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "cancelled_by": self.cancelled_by,
            "cancellation_reason": self.cancellation_reason,
        }
