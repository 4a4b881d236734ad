"""Scheduled reconciliation jobs and the tenant batch runner that drives them."""

from .registry import AUTOMATION_JOBS, JobDescriptor, get_descriptor
from .result import AutomationResult
from .runner import TenantBatchRunner

__all__ = [
    "AUTOMATION_JOBS",
    "AutomationResult",
    "JobDescriptor",
    "TenantBatchRunner",
    "get_descriptor",
]
