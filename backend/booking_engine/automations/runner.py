"""
Tenant Batch Runner

Runs an AutomationJob across all active tenants (or one, when scoped) and
folds every outcome into a single AutomationResult. Nothing raised by a
tenant or a booking escapes: tenant failures are recorded as
"Tenant <name>: <error>", booking failures as "Booking <id>: <error>", and
only a failure before the tenant loop starts marks the run unsuccessful.

Each tenant is processed with its own session, so tenants can be swept in
parallel with bounded concurrency without sharing database state.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
import logging
import time
from typing import Any, Callable, List, NamedTuple, Optional

from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import SessionLocal
from ..models.types import utcnow
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from .base import AutomationJob, TenantContext, describe_error
from .result import AutomationResult

logger = logging.getLogger(__name__)

NO_TENANTS_MESSAGE = "No tenants found to process"
TIME_LIMIT_MESSAGE = "stopped at the task time limit"


class TenantRef(NamedTuple):
    id: str
    name: str


class TenantBatchRunner:
    """
    Drives one automation job over a tenant sweep.

    Args:
        session_factory: Creates sessions; one per tenant plus one for enumeration
        max_workers: Tenants processed concurrently (1 = sequential)
        clock: Returns the current UTC time; read once per run
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        max_workers: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        self.max_workers = max(1, max_workers or settings.automation_max_workers)
        self.clock = clock or utcnow

    def run(
        self, job: AutomationJob, tenant_id: Optional[str] = None, **options: Any
    ) -> AutomationResult:
        result = AutomationResult()
        started = time.monotonic()
        now = self.clock()
        options = {key: value for key, value in options.items() if value is not None}

        try:
            tenants = self._resolve_tenants(tenant_id)
        except Exception as exc:
            reason = describe_error(exc)
            logger.error(f"{job.name}: could not enumerate tenants: {reason}", exc_info=True)
            result.record_fatal(f"Error {job.error_verb}: {reason}", reason)
            self._finish(job, result, started)
            return result

        if not tenants:
            result.message = NO_TENANTS_MESSAGE
            self._finish(job, result, started)
            return result

        try:
            self._sweep(job, tenants, now, options, result)
        except SoftTimeLimitExceeded:
            # Tenants not reached yet are picked up by the next scheduled run
            logger.warning(f"{job.name}: {TIME_LIMIT_MESSAGE}", extra={"job": job.name})
            result.message = f"{job.summarize(result)}; {TIME_LIMIT_MESSAGE}"
        else:
            result.message = job.summarize(result)
        self._finish(job, result, started)
        return result

    def _sweep(
        self,
        job: AutomationJob,
        tenants: List[TenantRef],
        now: datetime,
        options: dict,
        result: AutomationResult,
    ) -> None:
        workers = min(self.max_workers, len(tenants))
        if workers == 1:
            for ref in tenants:
                self._run_tenant(job, ref, now, options, result)
            return

        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=job.name)
        try:
            list(pool.map(lambda ref: self._run_tenant(job, ref, now, options, result), tenants))
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def _resolve_tenants(self, tenant_id: Optional[str]) -> List[TenantRef]:
        db = self.session_factory()
        try:
            repository = RepositoryFactory.create_tenant_repository(db)
            if tenant_id:
                tenant = repository.get_by_id(tenant_id)
                tenants = [tenant] if tenant is not None else []
            else:
                tenants = repository.find_active_tenants()
            return [TenantRef(tenant.id, tenant.name) for tenant in tenants]
        finally:
            db.close()

    def _run_tenant(
        self,
        job: AutomationJob,
        ref: TenantRef,
        now: datetime,
        options: dict,
        result: AutomationResult,
    ) -> None:
        db = self.session_factory()
        try:
            tenant = RepositoryFactory.create_tenant_repository(db).get_by_id(ref.id)
            if tenant is None:
                raise LookupError("Tenant no longer exists")
            ctx = TenantContext(
                db=db,
                tenant=tenant,
                settings=job.settings_provider.for_tenant(tenant),
                now=now,
                options=options,
            )
            job.process_tenant(ctx, result)
        except SoftTimeLimitExceeded:
            db.rollback()
            logger.error(
                f"{job.name} hit the task time limit in tenant {ref.name}",
                extra={"tenant_id": ref.id},
            )
            result.record_tenant_error(ref.name, TIME_LIMIT_MESSAGE)
            raise
        except Exception as exc:
            db.rollback()
            message = describe_error(exc)
            logger.error(
                f"{job.name} failed for tenant {ref.name}: {message}",
                extra={"tenant_id": ref.id},
                exc_info=True,
            )
            result.record_tenant_error(ref.name, message)
        finally:
            db.close()

    def _finish(self, job: AutomationJob, result: AutomationResult, started: float) -> None:
        duration = time.monotonic() - started
        logger.info(
            f"{job.name}: {result.message}",
            extra={
                "job": job.name,
                "processed": result.processed,
                "failed": result.failed,
                "skipped": result.skipped,
                "duration_seconds": round(duration, 3),
            },
        )
        prometheus_metrics.record_automation_run(
            job.name, result.success, result.processed, result.failed, duration
        )
