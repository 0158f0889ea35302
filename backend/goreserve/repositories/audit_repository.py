# backend/goreserve/repositories/audit_repository.py
"""Append-only access to the booking activity log."""

from datetime import datetime
from typing import Any, List, Mapping, Optional, cast

from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.audit_log import BookingActivityLog
from .base_repository import BaseRepository


class AuditRepository(BaseRepository[BookingActivityLog]):
    def __init__(self, db: Session):
        super().__init__(db, BookingActivityLog)

    def write(
        self,
        booking_id: str,
        action: str,
        performed_by: str,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        at: Optional[datetime] = None,
    ) -> BookingActivityLog:
        entry = BookingActivityLog.for_booking(
            booking_id=booking_id,
            action=action,
            performed_by=performed_by,
            description=description,
            metadata=metadata,
            at=at,
        )
        return self.add(entry)

    def list_for_booking(self, booking_id: str) -> List[BookingActivityLog]:
        try:
            return cast(
                List[BookingActivityLog],
                self.db.query(BookingActivityLog)
                .filter(BookingActivityLog.booking_id == booking_id)
                .order_by(BookingActivityLog.created_at, BookingActivityLog.id)
                .all(),
            )
        except Exception as e:
            self.logger.error(f"Error listing activity for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to list booking activity: {str(e)}")
