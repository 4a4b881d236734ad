# backend/booking_engine/services/tenant_settings.py
"""
Tenant settings provider for the automation jobs.

Jobs receive a provider at construction time and ask it for one tenant's
settings per sweep. The database-backed provider reads the Tenant row; tests
substitute an in-memory provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Mapping, Optional, Protocol

from ..core.config import settings
from ..core.constants import DEFAULT_COMPANY_NAME
from ..core.exceptions import ValidationException
from ..models.tenant import Tenant

logger = logging.getLogger(__name__)

TEMPLATE_CHANNELS = ("email", "sms")


@dataclass(frozen=True)
class TenantSettings:
    """Read-only view of the tenant toggles the engine consults."""

    tenant_id: str
    tenant_name: str
    company_name: Optional[str] = None
    email_notifications: bool = True
    sms_notifications: bool = False
    auto_confirm_bookings: bool = True
    reminder_hours_before: Optional[int] = None
    no_show_grace_minutes: Optional[int] = None
    # Business contact details offered to customers; contact_email is also the reply-to
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    timezone: str = "UTC"
    notification_templates: Mapping[str, Mapping[str, str]] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.company_name or self.tenant_name or DEFAULT_COMPANY_NAME

    @property
    def notifications_enabled(self) -> bool:
        return self.email_notifications or self.sms_notifications

    def template_override(self, channel: str, kind: str) -> Optional[str]:
        """Tenant-supplied template text for a channel and notification kind."""
        template = self.notification_templates.get(channel, {}).get(kind)
        return template or None

    def reminder_hours(self, option: Optional[int] = None) -> int:
        return resolve_policy(option, self.reminder_hours_before, settings.reminder_hours_before)

    def grace_minutes(self, option: Optional[int] = None) -> int:
        return resolve_policy(option, self.no_show_grace_minutes, settings.no_show_grace_minutes)


class TenantSettingsProvider(Protocol):
    """Interface for tenant settings lookups - enables fakes in tests."""

    def for_tenant(self, tenant: Tenant) -> TenantSettings:
        """Return the settings for one tenant."""
        ...


def resolve_policy(option: Optional[int], tenant_value: Optional[int], default: int) -> int:
    """Explicit job option wins over the tenant override, which wins over the default."""
    if option is not None:
        return option
    if tenant_value is not None:
        return tenant_value
    return default


def _validate_templates(raw: Any, tenant_name: str) -> Dict[str, Dict[str, str]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationException(
            f"Notification templates for {tenant_name} must be a mapping",
            code="INVALID_TENANT_SETTINGS",
        )
    templates: Dict[str, Dict[str, str]] = {}
    for channel, entries in raw.items():
        if channel not in TEMPLATE_CHANNELS:
            logger.warning(f"Ignoring unknown template channel {channel!r} for {tenant_name}")
            continue
        if not isinstance(entries, dict) or not all(
            isinstance(value, str) for value in entries.values()
        ):
            raise ValidationException(
                f"Notification templates for {tenant_name} ({channel}) must map kinds to text",
                code="INVALID_TENANT_SETTINGS",
            )
        templates[channel] = dict(entries)
    return templates


def _validate_non_negative(value: Optional[int], label: str, tenant_name: str) -> Optional[int]:
    if value is not None and value < 0:
        raise ValidationException(
            f"{label} for {tenant_name} cannot be negative", code="INVALID_TENANT_SETTINGS"
        )
    return value


class DatabaseTenantSettingsProvider:
    """Builds TenantSettings from the Tenant row; malformed settings raise ValidationException."""

    def for_tenant(self, tenant: Tenant) -> TenantSettings:
        name = tenant.name or ""
        return TenantSettings(
            tenant_id=tenant.id,
            tenant_name=name,
            company_name=tenant.company_name,
            email_notifications=bool(tenant.email_notifications),
            sms_notifications=bool(tenant.sms_notifications),
            auto_confirm_bookings=bool(tenant.auto_confirm_bookings),
            reminder_hours_before=_validate_non_negative(
                tenant.reminder_hours_before, "Reminder lead time", name
            ),
            no_show_grace_minutes=_validate_non_negative(
                tenant.no_show_grace_minutes, "No-show grace period", name
            ),
            timezone=tenant.timezone or "UTC",
            contact_email=tenant.contact_email or None,
            contact_phone=tenant.contact_phone or None,
            notification_templates=_validate_templates(tenant.notification_templates, name),
        )
