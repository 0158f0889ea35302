# backend/goreserve/core/exceptions.py
"""
Domain-specific exceptions for the GoReserve scheduling engine.

Booking conflicts and balance shortages are NOT exceptions: they are
returned as values (see goreserve.domain). The exceptions below signal
programming errors, missing data and lifecycle rule violations.
"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationException(DomainException):
    """Raised when business validation fails."""


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""


class ServiceException(DomainException):
    """Raised when a service operation fails."""


class BookingLockTimeoutException(ServiceException):
    """Raised when the booking lock for a business/date cannot be acquired in time."""

    def __init__(self, lock_key: str, waited_seconds: float):
        super().__init__(
            message="Another booking for this time is being processed. Please retry.",
            code="BOOKING_LOCK_TIMEOUT",
            details={"lock_key": lock_key, "waited_seconds": waited_seconds},
        )


class IllegalTransitionException(BusinessRuleException):
    """Raised when a reservation status transition is not allowed."""

    def __init__(self, booking_ref: str, current: str, target: str):
        super().__init__(
            message=f"Booking {booking_ref} cannot move from {current} to {target}",
            code="ILLEGAL_STATUS_TRANSITION",
            details={"booking_ref": booking_ref, "current": current, "target": target},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
