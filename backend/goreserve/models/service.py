# backend/goreserve/models/service.py
"""
Service model: the bookable offering and its booking policy.

Policy columns are nullable; empty values fall back to the configured
defaults (see Settings.booking_*), so a business only stores overrides.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.config import settings
from ..database import Base

service_staff = Table(
    "service_staff",
    Base.metadata,
    Column("service_id", String(26), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
    Column("staff_id", String(26), ForeignKey("staff.id", ondelete="CASCADE"), primary_key=True),
)


class Service(Base):
    __tablename__ = "services"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    business_id = Column(
        String(26), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # Booking policy
    min_advance_hours = Column(Integer, nullable=True)
    advance_booking_days = Column(Integer, nullable=True)
    cancellation_hours = Column(Integer, nullable=True)
    max_bookings_per_slot = Column(Integer, nullable=False, default=1)
    slot_interval_minutes = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)

    business = relationship("Business", back_populates="services")
    staff = relationship("Staff", secondary=service_staff, back_populates="services")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_service_duration_positive"),
        CheckConstraint("max_bookings_per_slot >= 1", name="check_service_capacity_positive"),
        CheckConstraint("price >= 0", name="check_service_price_non_negative"),
    )

    @property
    def effective_min_advance_hours(self) -> int:
        if self.min_advance_hours is None:
            return settings.booking_min_advance_hours
        return int(self.min_advance_hours)

    @property
    def effective_advance_booking_days(self) -> int:
        if self.advance_booking_days is None:
            return settings.booking_advance_days
        return int(self.advance_booking_days)

    @property
    def effective_cancellation_hours(self) -> int:
        if self.cancellation_hours is None:
            return settings.booking_cancellation_hours
        return int(self.cancellation_hours)

    @property
    def effective_slot_interval_minutes(self) -> int:
        if not self.slot_interval_minutes:
            return settings.booking_slot_interval_minutes
        return int(self.slot_interval_minutes)

    @property
    def capacity(self) -> int:
        return max(1, int(self.max_bookings_per_slot or 1))

    def __repr__(self) -> str:
        return f"<Service {self.id}: {self.name} ({self.duration_minutes}m)>"
