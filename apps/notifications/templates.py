"""Email template rendering with ``{{placeholder}}`` substitution."""

from __future__ import annotations

import logging
import re
from typing import Mapping, NamedTuple

from django.utils import timezone  # type: ignore

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([\w.]+)\s*\}\}")


DEFAULT_TEMPLATES = {
    "owner_account_approved": {
        "subject": "Your {{brand_name}} owner account has been approved",
        "body": (
            "Hello {{ownerName}},\n\n"
            "Good news! Your owner account ({{email}}) has been approved.\n"
            "You can now sign in at {{loginUrl}} and list your vehicles from "
            "your dashboard: {{dashboardUrl}}\n\n"
            "Welcome aboard,\nThe {{brand_name}} team"
        ),
        "description": "Sent when an administrator approves an owner account",
    },
    "trip_pickup_reminder": {
        "subject": "Reminder: pickup for booking {{booking_reference}} is tomorrow",
        "body": (
            "Hello {{customer_name}},\n\n"
            "Your rental of {{vehicle_make}} {{vehicle_model}} starts on "
            "{{pickup_date}} at {{pickup_time}}.\n"
            "Pickup location: {{pickup_location}}\n\n"
            "Questions? Call {{support_phone}} or write to {{support_email}}."
        ),
        "description": "Sent the day before pickup",
    },
    "trip_return_reminder": {
        "subject": "Reminder: return for booking {{booking_reference}} is tomorrow",
        "body": (
            "Hello {{customer_name}},\n\n"
            "Your rental of {{vehicle_make}} {{vehicle_model}} ends on "
            "{{return_date}} at {{return_time}}.\n"
            "Return location: {{return_location}}\n\n"
            "Please return the vehicle on time with the same fuel level.\n"
            "Questions? Call {{support_phone}} or write to {{support_email}}."
        ),
        "description": "Sent the day before return",
    },
    "deposit_refund_processed": {
        "subject": "Deposit refund processed for booking {{booking_reference}}",
        "body": (
            "Hello {{customer_name}},\n\n"
            "Your deposit refund of {{currency}} {{amount}} for the "
            "{{vehicle_name}} booking {{booking_reference}} has been processed.\n"
            "The funds should reflect in your account shortly."
        ),
        "description": "Sent after a security deposit has been refunded",
    },
}


class RenderedMessage(NamedTuple):
    subject: str
    body: str


def substitute(text: str, placeholders: Mapping[str, object]) -> str:
    """Подставляет значения; незаполненные плейсхолдеры удаляются."""

    def replace(match: re.Match) -> str:
        value = placeholders.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_RE.sub(replace, text or "")


class TemplateRenderer:
    def __init__(self, defaults: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self.defaults = DEFAULT_TEMPLATES if defaults is None else defaults

    def render(self, name: str, placeholders: Mapping[str, object]) -> RenderedMessage:
        template = self._get_template(name)
        if template is None:
            logger.warning("Email template '%s' not found, using plain listing", name)
            return self._fallback(placeholders)
        return RenderedMessage(
            subject=substitute(template.subject, placeholders),
            body=substitute(template.body, placeholders),
        )

    def _get_template(self, name: str):
        from .models import EmailTemplate

        template = EmailTemplate.objects.filter(name=name, is_active=True).first()
        if template is not None:
            return template
        if name not in self.defaults:
            return None
        # Шаблон по умолчанию сохраняется, чтобы его можно было править в админке
        default = self.defaults[name]
        template, created = EmailTemplate.objects.get_or_create(
            name=name,
            defaults={
                "subject": default["subject"],
                "body": default["body"],
                "description": default.get("description", ""),
            },
        )
        if created:
            logger.info("Seeded default email template '%s'", name)
        return template if template.is_active else None

    @staticmethod
    def _fallback(placeholders: Mapping[str, object]) -> RenderedMessage:
        body = "\n".join(f"{key}: {value}" for key, value in placeholders.items())
        subject = f"Notification - {timezone.now():%Y-%m-%d}"
        return RenderedMessage(subject=subject, body=body)
