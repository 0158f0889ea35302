# backend/goreserve/services/availability_resolver.py
"""
Availability Resolver for GoReserve

Turns the standing weekly hours of a business or staff member, plus the
staff member's day-specific exceptions, into the open window for one
date. Read-only: nothing here writes or locks.
"""

from datetime import date
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.time_utils import weekday_key
from ..domain.availability import ClosedDay, ResolvedWindow, resolve_window
from ..models.business import Business, Staff
from ..repositories.availability_repository import AvailabilityRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class AvailabilityResolver(BaseService):
    def __init__(self, db: Session, repository: Optional[AvailabilityRepository] = None):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_availability_repository(db)

    @staticmethod
    def standing_hours(
        business: Business, target_date: date, staff: Optional[Staff] = None
    ) -> Optional[Dict[str, Any]]:
        """Weekday hours for the staff member, falling back to the business document."""
        key = weekday_key(target_date)
        if staff is not None and not staff.inherits_business_hours:
            value = (staff.working_hours or {}).get(key)
            return value if isinstance(value, dict) else None
        return business.hours_for(key)

    def business_window(self, business: Business, target_date: date) -> ResolvedWindow:
        return resolve_window(self.standing_hours(business, target_date))

    def staff_window(self, business: Business, staff: Staff, target_date: date) -> ResolvedWindow:
        if not staff.is_active:
            return ClosedDay(reason="inactive")
        overrides = self.repository.get_staff_exceptions(staff.id, target_date)
        return resolve_window(self.standing_hours(business, target_date, staff), overrides)

    @BaseService.measure_operation("resolve_window")
    def resolve_window(
        self, business: Business, target_date: date, staff: Optional[Staff] = None
    ) -> ResolvedWindow:
        """
        Effective open window of a business, or of one of its staff members, on a date.

        Returns ClosedDay when no hours are configured for the weekday, the
        day is blocked by an exception, or the staff member is inactive.
        """
        if staff is None:
            window = self.business_window(business, target_date)
        else:
            window = self.staff_window(business, staff, target_date)
        self.logger.debug(
            f"Resolved window for business {business.id} staff {getattr(staff, 'id', None)} "
            f"on {target_date}: {window}"
        )
        return window
