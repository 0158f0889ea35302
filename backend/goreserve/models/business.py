# backend/goreserve/models/business.py
"""
Business, staff and staff availability models.

Working hours are stored as a JSON document keyed by lowercase weekday:

    {"monday": {"open": "09:00", "close": "17:00"}, "sunday": null}

A missing or null weekday means closed. Staff members own an independent
document; a staff member whose whole document is null works the business
hours. Day-specific overrides live in StaffAvailability.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON
import ulid

from ..core.enums import AvailabilityExceptionType
from ..database import Base


class Business(Base):
    __tablename__ = "businesses"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    working_hours = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_cleanup_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)

    services = relationship("Service", back_populates="business")
    staff = relationship("Staff", back_populates="business")

    def hours_for(self, weekday: str) -> Optional[Dict[str, Any]]:
        hours = self.working_hours or {}
        value = hours.get(weekday)
        return value if isinstance(value, dict) else None

    def __repr__(self) -> str:
        return f"<Business {self.id}: {self.name}>"


class Staff(Base):
    __tablename__ = "staff"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    business_id = Column(
        String(26), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    working_hours = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    business = relationship("Business", back_populates="staff")
    services = relationship("Service", secondary="service_staff", back_populates="staff")
    availabilities = relationship(
        "StaffAvailability", back_populates="staff", cascade="all, delete-orphan"
    )

    @property
    def inherits_business_hours(self) -> bool:
        return self.working_hours is None

    def __repr__(self) -> str:
        return f"<Staff {self.id}: {self.name}>"


class StaffAvailability(Base):
    """Day-specific staff override: vacation, sick leave, blocked time or extra hours."""

    __tablename__ = "staff_availabilities"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    staff_id = Column(String(26), ForeignKey("staff.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    type = Column(String(20), nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    staff = relationship("Staff", back_populates="availabilities")

    __table_args__ = (
        CheckConstraint(
            "type IN ('vacation', 'sick', 'blocked', 'available')",
            name="ck_staff_availabilities_type",
        ),
        Index("idx_staff_availabilities_staff_date", "staff_id", "date"),
    )

    @property
    def exception_type(self) -> AvailabilityExceptionType:
        return AvailabilityExceptionType(self.type)

    @property
    def is_blocking(self) -> bool:
        return self.exception_type.is_blocking

    def __repr__(self) -> str:
        return f"<StaffAvailability {self.staff_id} {self.date} {self.type}>"
