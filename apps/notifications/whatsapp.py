"""WhatsApp Cloud API client (Meta Graph API)."""

from __future__ import annotations

import logging
import re
from typing import Any

import requests
from django.conf import settings  # type: ignore

from .exceptions import ProviderError, ProviderNotConfigured

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"


def normalize_phone_number(phone: str, default_country_code: str = "233") -> str:
    """Приводит номер к международному формату без '+'.

    0241234567 -> 233241234567, +233 24-123-4567 -> 233241234567
    """
    digits = re.sub(r"[\s\-\(\)\.]", "", str(phone or ""))
    if digits.startswith("+"):
        digits = digits[1:]
    elif digits.startswith("00"):
        digits = digits[2:]
    elif digits.startswith("0") and default_country_code:
        digits = f"{default_country_code}{digits[1:]}"
    return digits


class WhatsAppCloudClient:
    name = "whatsapp"

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_version: str = "v18.0",
        default_country_code: str = "233",
        timeout: float = 10,
        session: requests.Session | None = None,
    ) -> None:
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.default_country_code = default_country_code
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.access_token and self.phone_number_id)

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_API_URL}/{self.api_version}/{self.phone_number_id}/messages"

    def send_text(self, phone: str, body: str, preview_url: bool = False) -> dict[str, Any]:
        """Отправить текстовое сообщение через WhatsApp Business API"""
        if not self.is_configured:
            raise ProviderNotConfigured(self.name)

        to = normalize_phone_number(phone, self.default_country_code)
        if not to:
            raise ProviderError(self.name, f"invalid phone number {phone!r}")

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"preview_url": preview_url, "body": body},
        }
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

        try:
            response = self.session.post(self.messages_url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Error sending WhatsApp message to %s: %s", to, exc)
            raise ProviderError(self.name, str(exc)) from exc

        logger.info("WhatsApp message sent to %s", to)
        try:
            return response.json()
        except ValueError:
            return {}

    @classmethod
    def from_settings(cls, timeout: float | None = None) -> "WhatsAppCloudClient":
        return cls(
            access_token=getattr(settings, "WHATSAPP_ACCESS_TOKEN", ""),
            phone_number_id=getattr(settings, "WHATSAPP_PHONE_NUMBER_ID", ""),
            api_version=getattr(settings, "WHATSAPP_API_VERSION", "v18.0"),
            default_country_code=getattr(settings, "WHATSAPP_DEFAULT_COUNTRY_CODE", "233"),
            timeout=timeout if timeout is not None else 10,
        )
