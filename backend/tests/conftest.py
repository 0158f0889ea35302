# backend/tests/conftest.py
"""
Pytest configuration for the GoReserve scheduling engine.

Every test gets its own in-memory SQLite database (StaticPool keeps the one
connection alive for the session) with the full schema created from the
models. Commits made by services are real commits against that database.

Time is pinned: NOW is Monday 2026-03-02 08:00 local time.
"""

import os

# Set testing mode BEFORE any goreserve imports
os.environ.setdefault("CI", "true")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BOOKING_LOCK_BACKEND"] = "local"

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, Optional
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from goreserve.core.booking_lock import BookingLockManager
from goreserve.core.enums import BookingStatus, PaymentStatus
from goreserve.database import Base
from goreserve.models import Booking, Business, Service, Staff, StaffAvailability

NOW = datetime(2026, 3, 2, 8, 0)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)

NINE_TO_FIVE = {"open": "09:00", "close": "17:00"}
WEEKDAY_HOURS: Dict[str, Any] = {
    "monday": NINE_TO_FIVE,
    "tuesday": NINE_TO_FIVE,
    "wednesday": NINE_TO_FIVE,
    "thursday": NINE_TO_FIVE,
    "friday": NINE_TO_FIVE,
    "saturday": {"open": "10:00", "close": "14:00"},
    "sunday": None,
}


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def db() -> Iterator[Session]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def lock_manager() -> BookingLockManager:
    return BookingLockManager(backend="local", wait_seconds=1.0, ttl_seconds=5)


@pytest.fixture
def releaser() -> MagicMock:
    mock = MagicMock()
    mock.release.return_value = True
    return mock


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock()


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_business(db: Session) -> Callable[..., Business]:
    def _make(name: str = "Studio One", working_hours: Optional[Dict[str, Any]] = None) -> Business:
        business = Business(
            name=name,
            working_hours=dict(WEEKDAY_HOURS) if working_hours is None else working_hours,
            is_active=True,
        )
        db.add(business)
        db.commit()
        return business

    return _make


@pytest.fixture
def make_service(db: Session) -> Callable[..., Service]:
    def _make(business: Business, **overrides: Any) -> Service:
        values: Dict[str, Any] = {
            "name": "Haircut",
            "duration_minutes": 60,
            "price": Decimal("50.00"),
            "min_advance_hours": 2,
            "advance_booking_days": 30,
            "cancellation_hours": 24,
            "max_bookings_per_slot": 1,
            "slot_interval_minutes": 30,
        }
        values.update(overrides)
        service = Service(business_id=business.id, **values)
        db.add(service)
        db.commit()
        return service

    return _make


@pytest.fixture
def make_staff(db: Session) -> Callable[..., Staff]:
    def _make(
        business: Business,
        name: str = "Alex",
        services: tuple = (),
        working_hours: Optional[Dict[str, Any]] = None,
        is_active: bool = True,
    ) -> Staff:
        staff = Staff(
            business_id=business.id,
            name=name,
            working_hours=working_hours,
            is_active=is_active,
        )
        staff.services = list(services)
        db.add(staff)
        db.commit()
        return staff

    return _make


@pytest.fixture
def make_exception(db: Session) -> Callable[..., StaffAvailability]:
    def _make(
        staff: Staff,
        on: date,
        type: str,
        start: Optional[time] = None,
        end: Optional[time] = None,
    ) -> StaffAvailability:
        record = StaffAvailability(
            staff_id=staff.id, date=on, type=type, start_time=start, end_time=end
        )
        db.add(record)
        db.commit()
        return record

    return _make


@pytest.fixture
def make_booking(db: Session) -> Callable[..., Booking]:
    def _make(
        service: Service,
        on: date = TOMORROW,
        start: time = time(10, 0),
        end: Optional[time] = None,
        staff: Optional[Staff] = None,
        status: BookingStatus = BookingStatus.CONFIRMED,
        payment_status: PaymentStatus = PaymentStatus.PAID,
        created_at: Optional[datetime] = None,
        amount: Decimal = Decimal("50.00"),
        payment_intent_id: Optional[str] = None,
        user_id: str = "customer-1",
    ) -> Booking:
        if end is None:
            end = (datetime.combine(on, start) + timedelta(minutes=service.duration_minutes)).time()
        booking = Booking(
            user_id=user_id,
            business_id=service.business_id,
            service_id=service.id,
            staff_id=staff.id if staff is not None else None,
            booking_date=on,
            start_time=start,
            end_time=end,
            amount=amount,
            status=status.value,
            payment_status=payment_status.value,
            payment_intent_id=payment_intent_id,
            created_at=created_at or NOW - timedelta(days=1),
        )
        db.add(booking)
        db.commit()
        return booking

    return _make
