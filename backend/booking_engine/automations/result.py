"""Outcome of one automation invocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List


@dataclass
class AutomationResult:
    """
    Counts and error strings for one run of a job across its tenants.

    processed counts completed side effects, failed counts item- and
    tenant-level errors, skipped counts items deliberately left alone
    (conflicts, lost races). errors may also hold non-fatal notification
    problems that did not fail their item.

    Safe to update from several tenant workers at once.
    """

    success: bool = True
    message: str = ""
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False, compare=False)

    def record_success(self) -> None:
        with self._lock:
            self.processed += 1

    def record_skip(self) -> None:
        with self._lock:
            self.skipped += 1

    def record_item_error(self, booking_id: Any, message: str) -> None:
        with self._lock:
            self.failed += 1
            self.errors.append(f"Booking {booking_id}: {message}")

    def record_tenant_error(self, tenant_name: str, message: str) -> None:
        with self._lock:
            self.failed += 1
            self.errors.append(f"Tenant {tenant_name}: {message}")

    def record_notice(self, booking_id: Any, message: str) -> None:
        """Keep a non-fatal problem (e.g. one channel failed) without failing the item."""
        with self._lock:
            self.errors.append(f"Booking {booking_id}: {message}")

    def record_fatal(self, message: str, reason: str) -> None:
        with self._lock:
            self.success = False
            self.message = message
            self.errors.append(reason)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "success": self.success,
                "message": self.message,
                "processed": self.processed,
                "failed": self.failed,
                "skipped": self.skipped,
                "errors": list(self.errors),
            }
