# backend/goreserve/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for GoReserve

Loads the reservation snapshot the conflict detector decides over. All
queries read the booking's own date/time columns; cancelled reservations
never take part in a conflict.
"""

from collections import defaultdict
from datetime import date
import logging
from typing import Dict, List, Optional, cast

from sqlalchemy.orm import Session, joinedload

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[Booking]):
    """Repository for conflict checking data access."""

    def __init__(self, db: Session):
        """Initialize with Booking model as primary."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_bookings_for_conflict_check(
        self,
        business_id: str,
        check_date: date,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Get the non-cancelled bookings of a business on a specific date.

        Args:
            business_id: The business whose calendar is checked
            check_date: The date to check for conflicts
            exclude_booking_id: Optional booking ID to exclude (the one being updated)

        Returns:
            Bookings ordered by start time, with service and staff loaded
        """
        try:
            query = (
                self.db.query(Booking)
                .options(joinedload(Booking.service), joinedload(Booking.staff))
                .filter(
                    Booking.business_id == business_id,
                    Booking.booking_date == check_date,
                    Booking.status != BookingStatus.CANCELLED.value,
                )
            )

            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)

            return cast(List[Booking], query.order_by(Booking.start_time).all())

        except Exception as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}")

    def get_bookings_for_date_range(
        self,
        business_id: str,
        start_date: date,
        end_date: date,
        exclude_booking_id: Optional[str] = None,
    ) -> Dict[date, List[Booking]]:
        """
        Get non-cancelled bookings of a business grouped by date.

        Used by the suggestion scan so a multi-day horizon costs one query.
        """
        try:
            query = (
                self.db.query(Booking)
                .options(joinedload(Booking.service), joinedload(Booking.staff))
                .filter(
                    Booking.business_id == business_id,
                    Booking.booking_date >= start_date,
                    Booking.booking_date <= end_date,
                    Booking.status != BookingStatus.CANCELLED.value,
                )
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)

            grouped: Dict[date, List[Booking]] = defaultdict(list)
            for booking in query.order_by(Booking.booking_date, Booking.start_time).all():
                grouped[booking.booking_date].append(booking)
            return grouped

        except Exception as e:
            self.logger.error(f"Error getting bookings for date range: {str(e)}")
            raise RepositoryException(f"Failed to get bookings: {str(e)}")
