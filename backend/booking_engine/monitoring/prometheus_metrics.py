"""
Prometheus metrics for the booking engine.

Three families are exported from a private registry:

* ``booking_engine_service_*``: latency and outcome of @measure_operation calls
* ``booking_engine_automation_*``: one observation per automation run, with
  processed/failed item counts
* ``booking_engine_notifications_sent_total``: per kind, channel and status

The scrape payload is rebuilt at most once per second, and immediately after
any metric changes.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

_FAST_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)
# Runs sweep every tenant, so they are measured in seconds to minutes
_RUN_BUCKETS = (0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0)

service_operation_duration_seconds = Histogram(
    "booking_engine_service_operation_duration_seconds",
    "Duration of measured service operations",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=_FAST_BUCKETS,
)

service_operations_total = Counter(
    "booking_engine_service_operations_total",
    "Measured service operations by outcome",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "booking_engine_errors_total",
    "Exceptions raised out of measured service operations",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

automation_runs_total = Counter(
    "booking_engine_automation_runs_total",
    "Automation runs by job and outcome",
    ["job", "outcome"],  # success | failure
    registry=REGISTRY,
)

automation_items_total = Counter(
    "booking_engine_automation_items_total",
    "Bookings handled by automation runs",
    ["job", "result"],  # processed | failed
    registry=REGISTRY,
)

automation_run_duration_seconds = Histogram(
    "booking_engine_automation_run_duration_seconds",
    "Wall time of one automation run across all tenants",
    ["job"],
    registry=REGISTRY,
    buckets=_RUN_BUCKETS,
)

notifications_sent_total = Counter(
    "booking_engine_notifications_sent_total",
    "Customer notifications by kind, channel and delivery status",
    ["kind", "channel", "status"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Recording helpers plus the cached exposition used by /metrics/prometheus."""

    _lock: Lock = Lock()
    _payload: Optional[bytes] = None
    _built_at: float = 0.0
    _max_age_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._mark_stale()

    @staticmethod
    def record_automation_run(
        job: str, success: bool, processed: int, failed: int, duration: float
    ) -> None:
        automation_runs_total.labels(job=job, outcome="success" if success else "failure").inc()
        if processed:
            automation_items_total.labels(job=job, result="processed").inc(processed)
        if failed:
            automation_items_total.labels(job=job, result="failed").inc(failed)
        automation_run_duration_seconds.labels(job=job).observe(max(duration, 0.0))
        PrometheusMetrics._mark_stale()

    @staticmethod
    def record_notification(kind: str, channel: str, status: str) -> None:
        notifications_sent_total.labels(kind=kind, channel=channel, status=status).inc()
        PrometheusMetrics._mark_stale()

    @staticmethod
    def get_metrics() -> bytes:
        """Exposition-format payload for the private registry."""
        with PrometheusMetrics._lock:
            fresh = monotonic() - PrometheusMetrics._built_at <= PrometheusMetrics._max_age_seconds
            if PrometheusMetrics._payload is None or not fresh:
                PrometheusMetrics._payload = cast(bytes, generate_latest(REGISTRY))
                PrometheusMetrics._built_at = monotonic()
            return PrometheusMetrics._payload

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _mark_stale() -> None:
        with PrometheusMetrics._lock:
            PrometheusMetrics._payload = None


prometheus_metrics = PrometheusMetrics()
