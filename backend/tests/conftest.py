# backend/tests/conftest.py
"""
Shared fixtures for the booking engine test suite.

Every test gets its own SQLite file so the batch runner's per-tenant
sessions see committed data exactly as they would against a real server.
Tests commit their setup data and refresh objects after a run.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
import os
from typing import Any, Dict, List, Optional

# Must be set before booking_engine.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["SMS_ENABLED"] = "false"
os.environ.pop("CRON_SECRET", None)
os.environ.pop("SENTRY_DSN", None)

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session, sessionmaker

from booking_engine.automations.runner import TenantBatchRunner
from booking_engine.database import Base, build_engine, get_db
from booking_engine.models import Booking, BookingStatus, Tenant
from booking_engine.services.notification_service import NotificationOutcome
from booking_engine.services.tenant_settings import (
    DatabaseTenantSettingsProvider,
    TenantSettings,
)

FIXED_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'booking_engine_test.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def make_tenant(db: Session):
    counter = {"n": 0}

    def _make(**overrides: Any) -> Tenant:
        counter["n"] += 1
        data: Dict[str, Any] = {
            "name": f"Tenant {counter['n']}",
            "slug": f"tenant-{counter['n']}",
            "company_name": f"Studio {counter['n']}",
            "email_notifications": True,
            "sms_notifications": False,
        }
        data.update(overrides)
        tenant = Tenant(**data)
        db.add(tenant)
        db.commit()
        return tenant

    return _make


@pytest.fixture
def tenant(make_tenant) -> Tenant:
    return make_tenant()


@pytest.fixture
def make_booking(db: Session, now: datetime):
    def _make(tenant: Tenant, **overrides: Any) -> Booking:
        data: Dict[str, Any] = {
            "tenant_id": tenant.id,
            "customer_name": "Jamie Rivera",
            "customer_email": "jamie@example.com",
            "customer_phone": "+15555550100",
            "service_name": "Haircut",
            "start_time": now + timedelta(days=2),
            "duration_minutes": 30,
            "status": BookingStatus.PENDING.value,
        }
        data.update(overrides)
        booking = Booking(**data)
        db.add(booking)
        db.commit()
        return booking

    return _make


class RecordingNotifier:
    """Notifier double that records calls instead of sending anything."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.fail_for: Dict[str, str] = {}
        self.partial_fail_for: Dict[str, str] = {}
        self.raise_for: Dict[str, Exception] = {}

    def _record(self, kind: str, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        self.calls.append((kind, booking.id, tenant.tenant_id))
        if booking.id in self.raise_for:
            raise self.raise_for[booking.id]
        if booking.id in self.fail_for:
            return NotificationOutcome(errors=[self.fail_for[booking.id]])
        if booking.id in self.partial_fail_for:
            return NotificationOutcome(email=True, errors=[self.partial_fail_for[booking.id]])
        return NotificationOutcome(email=bool(booking.customer_email), sms=False)

    def send_reminder(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        return self._record("reminder", booking, tenant)

    def send_confirmation(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        return self._record("confirmation", booking, tenant)

    def send_follow_up(self, booking: Booking, tenant: TenantSettings) -> NotificationOutcome:
        return self._record("follow_up", booking, tenant)

    def booking_ids(self, kind: str) -> List[str]:
        return [booking_id for call_kind, booking_id, _ in self.calls if call_kind == kind]


class FakeSettingsProvider:
    """Settings provider with per-tenant overrides on top of the stored tenant."""

    def __init__(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.overrides = overrides or {}
        self.failing: Dict[str, Exception] = {}
        self._database = DatabaseTenantSettingsProvider()

    def for_tenant(self, tenant: Tenant) -> TenantSettings:
        if tenant.id in self.failing:
            raise self.failing[tenant.id]
        base = self._database.for_tenant(tenant)
        return replace(base, **self.overrides.get(tenant.id, {}))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def settings_provider() -> FakeSettingsProvider:
    return FakeSettingsProvider()


@pytest.fixture
def runner(session_factory, now) -> TenantBatchRunner:
    return TenantBatchRunner(session_factory=session_factory, max_workers=1, clock=lambda: now)


@pytest.fixture
def client(session_factory, runner, notifier, settings_provider):
    """Test client wired to the per-test database and test doubles."""
    from booking_engine.main import app
    from booking_engine.routes import dependencies

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[dependencies.get_runner] = lambda: runner
    app.dependency_overrides[dependencies.get_notifier] = lambda: notifier
    app.dependency_overrides[dependencies.get_settings_provider] = lambda: settings_provider

    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
    test_client.close()
