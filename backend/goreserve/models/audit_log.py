# backend/goreserve/models/audit_log.py
"""
Append-only activity log for reservation state changes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON
import ulid

from ..database import Base


class BookingActivityLog(Base):
    """Persistence model for booking audit trail entries."""

    __tablename__ = "booking_activity_logs"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    performed_by = Column(String(30), nullable=False)
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    booking = relationship("Booking", back_populates="activity_logs")

    __table_args__ = (Index("idx_booking_activity_logs_booking", "booking_id", "created_at"),)

    @classmethod
    def for_booking(
        cls,
        booking_id: str,
        action: str,
        performed_by: str,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        at: Optional[datetime] = None,
    ) -> "BookingActivityLog":
        return cls(
            booking_id=booking_id,
            action=action,
            performed_by=performed_by,
            description=description,
            metadata_json=dict(metadata) if metadata else None,
            created_at=at or datetime.now(),
        )

    def __repr__(self) -> str:
        return f"<BookingActivityLog {self.booking_id} {self.action} by {self.performed_by}>"
