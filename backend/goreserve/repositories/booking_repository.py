# backend/goreserve/repositories/booking_repository.py
"""
Booking Repository for GoReserve

Lookups by public reference, row locking for status transitions, and the
expiration candidate query used by the sweeper.
"""

from datetime import date, datetime, timedelta
import logging
from typing import List, Optional, cast

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from ..core.enums import BookingStatus, PaymentStatus
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_by_ref(self, booking_ref: str) -> Optional[Booking]:
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking).filter(Booking.booking_ref == booking_ref).first(),
            )
        except Exception as e:
            self.logger.error(f"Error getting booking {booking_ref}: {str(e)}")
            raise RepositoryException(f"Failed to get booking: {str(e)}")

    def get_for_update(self, booking_id: str) -> Optional[Booking]:
        """
        Re-read a booking with a row lock, overwriting any stale identity-map state.

        SQLite ignores FOR UPDATE; the keyed booking lock covers it there.
        """
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .options(joinedload(Booking.service))
                .filter(Booking.id == booking_id)
                .populate_existing()
                .with_for_update(of=Booking)
                .first(),
            )
        except Exception as e:
            self.logger.error(f"Error locking booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock booking: {str(e)}")

    def find_expiration_candidates(self, expiration_hours: int, now: datetime) -> List[Booking]:
        """
        Pending, unpaid bookings older than ``expiration_hours`` whose slot has not started.

        Args:
            expiration_hours: Minimum age of the reservation
            now: Current local time

        Returns:
            Candidates ordered oldest first
        """
        cutoff = now - timedelta(hours=expiration_hours)
        today = now.date()
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .options(joinedload(Booking.service))
                .filter(
                    and_(
                        Booking.status == BookingStatus.PENDING.value,
                        Booking.payment_status == PaymentStatus.PENDING.value,
                        Booking.created_at <= cutoff,
                        or_(
                            Booking.booking_date > today,
                            and_(
                                Booking.booking_date == today,
                                Booking.start_time > now.time(),
                            ),
                        ),
                    )
                )
                .order_by(Booking.created_at, Booking.id)
                .all(),
            )
        except Exception as e:
            self.logger.error(f"Error getting expiration candidates: {str(e)}")
            raise RepositoryException(f"Failed to get expiration candidates: {str(e)}")

    def count_for_customer_on_date(self, user_id: str, booking_date: date) -> int:
        """Non-cancelled bookings a customer holds on one date, at any business."""
        try:
            return int(
                self.db.query(Booking)
                .filter(
                    Booking.user_id == user_id,
                    Booking.booking_date == booking_date,
                    Booking.status != BookingStatus.CANCELLED.value,
                )
                .count()
            )
        except Exception as e:
            self.logger.error(f"Error counting bookings for customer {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to count customer bookings: {str(e)}")
