"""FastAPI dependencies for the automation routes."""

import hmac
from typing import Optional

from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from ..automations.runner import TenantBatchRunner
from ..core.config import settings
from ..core.exceptions import UnauthorizedException
from ..database import get_db
from ..services.automation_status import AutomationStatusService
from ..services.notification_service import BookingNotifier, Notifier
from ..services.reminder_service import ManualReminderService
from ..services.tenant_settings import DatabaseTenantSettingsProvider, TenantSettingsProvider


def verify_cron_secret(
    authorization: Optional[str] = Header(default=None),
    secret: Optional[str] = Query(default=None),
) -> None:
    """
    Accept "Authorization: Bearer <secret>" or ?secret=<secret>.

    With no cron secret configured every caller is allowed.
    """
    if settings.cron_secret is None:
        return
    expected = settings.cron_secret.get_secret_value()
    if not expected:
        return

    provided = ""
    if authorization and authorization.startswith("Bearer "):
        provided = authorization[len("Bearer ") :]
    elif secret:
        provided = secret
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise UnauthorizedException("Unauthorized", code="INVALID_CRON_SECRET").to_http_exception()


def get_runner() -> TenantBatchRunner:
    return TenantBatchRunner()


def get_notifier() -> Notifier:
    return BookingNotifier()


def get_settings_provider() -> TenantSettingsProvider:
    return DatabaseTenantSettingsProvider()


def get_status_service(db: Session = Depends(get_db)) -> AutomationStatusService:
    return AutomationStatusService(db)


def get_reminder_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    settings_provider: TenantSettingsProvider = Depends(get_settings_provider),
) -> ManualReminderService:
    return ManualReminderService(db, notifier=notifier, settings_provider=settings_provider)
