# backend/goreserve/core/enums.py
"""
Core enums for the GoReserve scheduling engine.

Values are the lowercase strings persisted in the database and returned
to callers in conflict/shortage payloads.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Reservation lifecycle statuses."""

    PENDING = "pending"  # Created, awaiting payment
    CONFIRMED = "confirmed"  # Paid
    COMPLETED = "completed"  # Service delivered
    CANCELLED = "cancelled"  # Terminal
    NO_SHOW = "no_show"  # Customer didn't attend


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    REFUNDED = "refunded"


class CancelledBy(str, Enum):
    """Who cancelled a reservation."""

    USER = "user"
    BUSINESS = "business"
    SYSTEM = "system"
    ADMIN = "admin"


class AvailabilityExceptionType(str, Enum):
    """Day-specific staff availability overrides."""

    VACATION = "vacation"
    SICK = "sick"
    BLOCKED = "blocked"
    AVAILABLE = "available"

    @property
    def is_blocking(self) -> bool:
        return self in (
            AvailabilityExceptionType.VACATION,
            AvailabilityExceptionType.SICK,
            AvailabilityExceptionType.BLOCKED,
        )


class ConflictKind(str, Enum):
    TIME_SLOT_TAKEN = "time_slot_taken"
    STAFF_UNAVAILABLE = "staff_unavailable"
    BUSINESS_CLOSED = "business_closed"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    ADVANCE_LIMIT_EXCEEDED = "advance_limit_exceeded"
    MINIMUM_NOTICE_REQUIRED = "minimum_notice_required"


class StaffUnavailableReason(str, Enum):
    BOOKED = "booked"
    OFF_DUTY = "off_duty"
    ON_BREAK = "on_break"
    VACATION = "vacation"


class BalanceKind(str, Enum):
    WALLET = "wallet"
    CREDIT = "credit"
    DEPOSIT = "deposit"
    BUSINESS_BALANCE = "business_balance"


class LedgerEntryType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class LedgerReferenceType(str, Enum):
    BOOKING = "booking"
    TOP_UP = "top_up"
    REFUND = "refund"
