"""
Built-in customer notification templates and the renderer that applies
tenant overrides.

Templates are Jinja2 source rendered in a sandbox, since tenants can supply
their own text. A tenant email override uses the "subject|body" form; an
override without "|" replaces only the body.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping, Optional

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from ..core.exceptions import ValidationException


class NotificationKind(StrEnum):
    REMINDER = "booking_reminder"
    CONFIRMATION = "booking_confirmation"
    NO_SHOW = "booking_no_show"


@dataclass(frozen=True)
class NotificationTemplate:
    kind: NotificationKind
    email_subject_template: str
    email_body_template: str
    sms_template: str


@dataclass(frozen=True)
class RenderedNotification:
    subject: str
    email_body: str
    sms_body: str


BOOKING_REMINDER = NotificationTemplate(
    kind=NotificationKind.REMINDER,
    email_subject_template="Reminder: {{ service_name }} Booking",
    email_body_template="""Hello {{ customer_name }},

This is a reminder that you have a booking for {{ service_name }}.

Date: {{ date }}
Time: {{ time }}
{% if staff_name %}Staff: {{ staff_name }}
{% endif %}
See you soon!

Best regards,
{{ company_name }}""",
    sms_template=(
        "Reminder: You have a booking for {{ service_name }} on {{ date }} at {{ time }}. "
        "See you soon!"
    ),
)

BOOKING_CONFIRMATION = NotificationTemplate(
    kind=NotificationKind.CONFIRMATION,
    email_subject_template="Booking Confirmation: {{ service_name }}",
    email_body_template="""Hello {{ customer_name }},

Your booking for {{ service_name }} is confirmed.

Date: {{ date }}
Time: {{ time }}
{% if staff_name %}Staff: {{ staff_name }}
{% endif %}{% if notes %}Notes: {{ notes }}
{% endif %}
We look forward to seeing you!

Best regards,
{{ company_name }}""",
    sms_template=(
        "Hi {{ customer_name }}, your booking for {{ service_name }} is confirmed for "
        "{{ date }} at {{ time }}. See you soon!"
    ),
)

BOOKING_NO_SHOW = NotificationTemplate(
    kind=NotificationKind.NO_SHOW,
    email_subject_template="Missed Appointment - {{ company_name }}",
    email_body_template="""We noticed you missed your appointment with {{ company_name }}.

Service: {{ service_name }}
Scheduled Date: {{ date }}
Scheduled Time: {{ time }}
{% if staff_name %}Staff: {{ staff_name }}
{% endif %}
We understand that sometimes things come up. If you'd like to reschedule, please contact us{% if contact_phone %} on {{ contact_phone }}{% elif contact_email %} at {{ contact_email }}{% endif %} and we'll be happy to help.

Thank you,
{{ company_name }}""",
    sms_template=(
        "We noticed you missed your appointment for {{ service_name }} on {{ date }} at "
        "{{ time }}. If you'd like to reschedule, please contact us"
        "{% if contact_phone %} on {{ contact_phone }}{% endif %}. - {{ company_name }}"
    ),
)

DEFAULT_TEMPLATES: Mapping[NotificationKind, NotificationTemplate] = {
    template.kind: template for template in (BOOKING_REMINDER, BOOKING_CONFIRMATION, BOOKING_NO_SHOW)
}

# Missing variables render empty in tenant text; built-ins must be complete
_tenant_env = SandboxedEnvironment(autoescape=False, keep_trailing_newline=False)
_default_env = SandboxedEnvironment(
    autoescape=False, keep_trailing_newline=False, undefined=StrictUndefined
)


def _render(env: SandboxedEnvironment, source: str, context: Mapping[str, Any]) -> str:
    try:
        return env.from_string(source).render(**context).strip()
    except TemplateError as exc:
        raise ValidationException(
            f"Notification template could not be rendered: {exc}", code="INVALID_TEMPLATE"
        ) from exc


def split_email_override(override: str) -> tuple[Optional[str], str]:
    """Split a "subject|body" override; returns (None, body) without a subject part."""
    if "|" in override:
        subject, body = override.split("|", 1)
        return subject.strip() or None, body
    return None, override


def render_notification(
    kind: NotificationKind,
    context: Mapping[str, Any],
    email_override: Optional[str] = None,
    sms_override: Optional[str] = None,
) -> RenderedNotification:
    """
    Render subject, email body and SMS body for one notification.

    Raises:
        ValidationException: if a template fails to render
    """
    template = DEFAULT_TEMPLATES[kind]

    subject = _render(_default_env, template.email_subject_template, context)
    email_body = None
    if email_override:
        override_subject, override_body = split_email_override(email_override)
        if override_subject:
            subject = _render(_tenant_env, override_subject, context)
        email_body = _render(_tenant_env, override_body, context)
    if not email_body:
        email_body = _render(_default_env, template.email_body_template, context)

    if sms_override:
        sms_body = _render(_tenant_env, sms_override, context)
    else:
        sms_body = _render(_default_env, template.sms_template, context)

    return RenderedNotification(subject=subject, email_body=email_body, sms_body=sms_body)
