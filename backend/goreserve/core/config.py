# backend/goreserve/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    # Persistence
    database_url: str = Field(
        default="sqlite:///./goreserve.db",
        description="SQLAlchemy database URL",
    )
    redis_url: str = Field(default="redis://localhost:6379", description="Redis URL")

    # Booking locks
    booking_lock_backend: Literal["local", "redis"] = Field(
        default="local",
        description="Keyed lock backend used to serialize check-then-write per business/date",
    )
    booking_lock_ttl_seconds: int = Field(default=30, ge=1)
    booking_lock_wait_seconds: float = Field(default=5.0, ge=0)

    # Booking policy defaults (used when a service leaves its policy column empty)
    booking_advance_days: int = Field(default=30, ge=0)
    booking_min_advance_hours: int = Field(default=2, ge=0)
    booking_cancellation_hours: int = Field(default=24, ge=0)
    booking_slot_interval_minutes: int = Field(default=30, ge=5)
    booking_expiration_hours: int = Field(default=2, ge=0)
    booking_daily_limit: int = Field(
        default=5, ge=1, description="Non-cancelled bookings one customer may hold per date"
    )

    # Suggestions
    suggestion_same_day_limit: int = Field(default=3, ge=0)
    suggestion_alternative_staff_limit: int = Field(default=3, ge=0)

    # Payments
    payment_currency: str = Field(default="USD")
    payment_plan_threshold: int = Field(
        default=500,
        description="Required amounts above this get an installment plan option",
    )
    stripe_secret_key: Optional[SecretStr] = Field(default=None)

    # Scheduling
    expiration_sweep_interval_minutes: int = Field(default=15, ge=1)
    expiration_sweep_notify: bool = Field(default=True)
    notifications_queue: str = Field(default="notifications")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("payment_currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
