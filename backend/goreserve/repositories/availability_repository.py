# backend/goreserve/repositories/availability_repository.py
"""
Availability Repository for GoReserve

Read access to the calendar data the availability resolver needs:
businesses, services, staff, qualified staff and day-specific staff
exceptions.
"""

from datetime import date, datetime
import logging
from typing import Iterable, List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.business import Business, Staff, StaffAvailability
from ..models.service import Service
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[Business]):
    def __init__(self, db: Session):
        super().__init__(db, Business)
        self.logger = logging.getLogger(__name__)

    def get_business(self, business_id: str) -> Optional[Business]:
        return self.get_by_id(business_id)

    def get_service(self, service_id: str) -> Optional[Service]:
        try:
            return cast(
                Optional[Service],
                self.db.query(Service)
                .options(selectinload(Service.staff))
                .filter(Service.id == service_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting service {service_id}: {str(e)}")
            raise RepositoryException(f"Failed to get service: {str(e)}")

    def get_staff(self, staff_id: str) -> Optional[Staff]:
        try:
            return cast(Optional[Staff], self.db.query(Staff).filter(Staff.id == staff_id).first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting staff {staff_id}: {str(e)}")
            raise RepositoryException(f"Failed to get staff: {str(e)}")

    def get_staff_exceptions(self, staff_id: str, target_date: date) -> List[StaffAvailability]:
        """Day-specific availability records for one staff member, ordered by start."""
        try:
            return cast(
                List[StaffAvailability],
                self.db.query(StaffAvailability)
                .filter(
                    StaffAvailability.staff_id == staff_id,
                    StaffAvailability.date == target_date,
                )
                .order_by(StaffAvailability.start_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting staff exceptions: {str(e)}")
            raise RepositoryException(f"Failed to get staff exceptions: {str(e)}")

    def get_qualified_staff(
        self, service_id: str, exclude_staff_id: Optional[str] = None
    ) -> List[Staff]:
        """Active staff members who perform the service, ordered by name."""
        try:
            query = (
                self.db.query(Staff)
                .join(Staff.services)
                .filter(Service.id == service_id, Staff.is_active.is_(True))
            )
            if exclude_staff_id:
                query = query.filter(Staff.id != exclude_staff_id)
            return cast(List[Staff], query.order_by(Staff.name, Staff.id).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting qualified staff: {str(e)}")
            raise RepositoryException(f"Failed to get qualified staff: {str(e)}")

    def stamp_last_cleanup(self, business_ids: Iterable[str], at: datetime) -> int:
        """Record the time of the last expiration sweep. Does NOT commit."""
        ids = sorted(set(business_ids))
        if not ids:
            return 0
        try:
            updated = (
                self.db.query(Business)
                .filter(Business.id.in_(ids))
                .update({Business.last_cleanup_at: at}, synchronize_session=False)
            )
            return int(updated)
        except SQLAlchemyError as e:
            self.logger.error(f"Error stamping cleanup time: {str(e)}")
            raise RepositoryException(f"Failed to stamp cleanup time: {str(e)}")
