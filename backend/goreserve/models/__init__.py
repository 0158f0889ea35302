"""
Database models for the GoReserve scheduling engine.

- Business, Staff, StaffAvailability: resources and their calendars
- Service: bookable offering and booking policy
- Booking: the reservation
- BookingActivityLog: append-only reservation audit trail
- WalletTransaction: append-only wallet ledger
"""

from .audit_log import BookingActivityLog
from .booking import Booking
from .business import Business, Staff, StaffAvailability
from .service import Service, service_staff
from .wallet import WalletTransaction

__all__ = [
    "Booking",
    "BookingActivityLog",
    "Business",
    "Service",
    "Staff",
    "StaffAvailability",
    "WalletTransaction",
    "service_staff",
]
