"""
Repository layer for GoReserve.

Repositories own data access only; transactions are committed by services.
"""

from .audit_repository import AuditRepository
from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .wallet_repository import WalletRepository

__all__ = [
    "AuditRepository",
    "AvailabilityRepository",
    "BaseRepository",
    "BookingRepository",
    "ConflictCheckerRepository",
    "RepositoryFactory",
    "WalletRepository",
]
