# backend/booking_engine/core/config.py
"""
Process-wide settings, read from the environment and backend/.env.

Policy defaults here are the platform fallbacks; a tenant's own settings and
the options of a single automation run take precedence over them.
"""

import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

# CI injects its configuration directly
if not os.getenv("CI"):
    logger.debug("Loading environment overrides from %s", ENV_FILE)
    load_dotenv(ENV_FILE)

PRODUCTION_SITE_MODES = frozenset({"prod", "production", "beta", "live"})


class Settings(BaseSettings):
    site_mode: str = "local"
    environment: Literal["development", "production"] = "development"
    is_testing: bool = False
    log_level: str = Field(default="INFO", description="Root log level for workers and API")

    # Persistence
    database_url: str = Field(
        default="sqlite:///./booking_engine.db",
        description="SQLAlchemy URL for the booking store",
    )
    database_pool_size: int = 10
    database_statement_timeout_seconds: int = Field(
        default=15,
        description="Upper bound for a single query; a timeout is a per-item/per-tenant error",
    )

    # Broker
    redis_url: str = "redis://localhost:6379"

    # Booking automation policy defaults (tenant settings and job options override)
    reminder_hours_before: int = Field(default=24, ge=0)
    reminder_window_minutes: int = Field(default=60, gt=0)
    no_show_grace_minutes: int = Field(default=15, ge=0)
    automation_max_workers: int = Field(
        default=1,
        ge=1,
        description="Tenants processed concurrently per automation run (1 = sequential)",
    )

    # Email settings
    email_provider: Literal["console", "resend"] = Field(
        default="console",
        description="console logs messages instead of sending them",
    )
    resend_api_key: Optional[SecretStr] = None
    from_email: str = "Bookings <bookings@example.com>"

    # SMS settings
    sms_enabled: bool = False
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[SecretStr] = None
    twilio_phone_number: Optional[str] = None

    # Manual/cron trigger protection; unset means open
    cron_secret: Optional[SecretStr] = None

    # Monitoring
    sentry_dsn: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=None if os.getenv("CI") else ENV_FILE,
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _environment_from_site_mode(cls, data: Any) -> Any:
        # An explicit ENVIRONMENT wins over SITE_MODE
        if isinstance(data, dict) and not data.get("environment"):
            site_mode = str(data.get("site_mode") or "local").strip().lower()
            data["environment"] = (
                "production" if site_mode in PRODUCTION_SITE_MODES else "development"
            )
        return data

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        level = (v or "INFO").upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, v: str) -> str:
        if not v or "://" not in v:
            raise ValueError("database_url must be a SQLAlchemy URL")
        # Heroku-style URLs are not accepted by SQLAlchemy 2.x
        if v.startswith("postgres://"):
            return "postgresql://" + v[len("postgres://") :]
        return v

    @property
    def sentry_enabled(self) -> bool:
        return bool(self.sentry_dsn)


settings = Settings()
