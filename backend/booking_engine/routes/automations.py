"""
Manual and cron-triggered automation endpoints.

POST or GET /api/automations/{job} runs one job for every active tenant, or
for a single tenant when tenant_id is given, and returns its
AutomationResult. All endpoints require the cron secret when one is
configured.
"""

import logging
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..automations.registry import JobDescriptor, get_descriptor
from ..automations.runner import TenantBatchRunner
from ..core.exceptions import DomainException
from ..services.automation_status import AutomationStatusService
from ..services.notification_service import Notifier
from ..services.reminder_service import ManualReminderService
from ..services.tenant_settings import TenantSettingsProvider
from .dependencies import (
    get_notifier,
    get_reminder_service,
    get_runner,
    get_settings_provider,
    get_status_service,
    verify_cron_secret,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["automations"], dependencies=[Depends(verify_cron_secret)])


class RunAutomationRequest(BaseModel):
    tenant_id: Optional[str] = None
    hours_before: Optional[int] = Field(default=None, ge=0)
    grace_period_minutes: Optional[int] = Field(default=None, ge=0)
    booking_id: Optional[str] = None


class AutomationResultResponse(BaseModel):
    success: bool
    message: str
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)


class AutomationStatusResponse(BaseModel):
    active_tenants: int
    reminders_due_24h: int
    pending_auto_confirm: int
    no_show_candidates: int


class NotificationResultResponse(BaseModel):
    email: bool
    sms: bool
    errors: List[str] = Field(default_factory=list)


class ManualReminderResponse(BaseModel):
    success: bool
    message: str
    results: NotificationResultResponse


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


def _error_result(exc: Exception) -> JSONResponse:
    reason = str(exc) or type(exc).__name__
    body = AutomationResultResponse(
        success=False, message=f"Error: {reason}", errors=[reason]
    ).model_dump()
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def _run_job(
    job_name: str,
    request: RunAutomationRequest,
    runner: TenantBatchRunner,
    notifier: Notifier,
    settings_provider: TenantSettingsProvider,
) -> Any:
    descriptor: Optional[JobDescriptor] = get_descriptor(job_name)
    if descriptor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown automation")

    options: Dict[str, Any] = {
        name: getattr(request, name) for name in descriptor.option_names
    }
    try:
        job = descriptor.job_class(notifier=notifier, settings_provider=settings_provider)
        result = runner.run(job, tenant_id=request.tenant_id, **options)
    except Exception as exc:
        logger.error(f"Automation {job_name} could not run: {exc}", exc_info=True)
        return _error_result(exc)
    return AutomationResultResponse(**result.to_dict())


@router.get("/automations/status", response_model=AutomationStatusResponse)
def automation_status(
    service: AutomationStatusService = Depends(get_status_service),
) -> AutomationStatusResponse:
    """Counts of work currently waiting for each automation."""
    try:
        return AutomationStatusResponse(**service.get_status())
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/automations/{job_name}", response_model=AutomationResultResponse)
def run_automation(
    job_name: str,
    request: Optional[RunAutomationRequest] = Body(default=None),
    runner: TenantBatchRunner = Depends(get_runner),
    notifier: Notifier = Depends(get_notifier),
    settings_provider: TenantSettingsProvider = Depends(get_settings_provider),
) -> Any:
    return _run_job(job_name, request or RunAutomationRequest(), runner, notifier, settings_provider)


@router.get("/automations/{job_name}", response_model=AutomationResultResponse)
def run_automation_get(
    job_name: str,
    tenant_id: Optional[str] = Query(default=None),
    hours_before: Optional[int] = Query(default=None, ge=0),
    grace_period_minutes: Optional[int] = Query(default=None, ge=0),
    booking_id: Optional[str] = Query(default=None),
    runner: TenantBatchRunner = Depends(get_runner),
    notifier: Notifier = Depends(get_notifier),
    settings_provider: TenantSettingsProvider = Depends(get_settings_provider),
) -> Any:
    """GET variant for schedulers that can only issue plain requests."""
    request = RunAutomationRequest(
        tenant_id=tenant_id,
        hours_before=hours_before,
        grace_period_minutes=grace_period_minutes,
        booking_id=booking_id,
    )
    return _run_job(job_name, request, runner, notifier, settings_provider)


@router.post("/bookings/{booking_id}/reminder", response_model=ManualReminderResponse)
def send_booking_reminder(
    booking_id: str,
    tenant_id: str = Header(alias="X-Tenant-ID"),
    service: ManualReminderService = Depends(get_reminder_service),
) -> ManualReminderResponse:
    """Send a booking's reminder immediately."""
    try:
        outcome = service.send_reminder(tenant_id, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ManualReminderResponse(
        success=True,
        message="Reminder sent successfully",
        results=NotificationResultResponse(
            email=outcome.email, sms=outcome.sms, errors=outcome.errors
        ),
    )
