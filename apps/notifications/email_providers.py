"""Email providers used by the delivery chain.

Each provider exposes a single ``send(message)`` that either returns or
raises ``ProviderError``. Disabled or credential-less providers raise
``ProviderNotConfigured`` so the chain can move on to the next one.
"""

from __future__ import annotations

import base64
import html
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Sequence

import boto3
import requests
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from django.core.mail import EmailMultiAlternatives, get_connection  # type: ignore
from django.utils.html import strip_tags  # type: ignore

from .exceptions import ProviderError, ProviderNotConfigured

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
POSTMARK_API_URL = "https://api.postmarkapp.com/email"


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    mimetype: str = "application/octet-stream"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str
    attachments: Sequence[Attachment] = field(default_factory=tuple)

    @property
    def html_body(self) -> str:
        return to_html(self.body)

    @property
    def text_body(self) -> str:
        return strip_tags(self.html_body) if looks_like_html(self.body) else self.body

    def without_attachments(self) -> "EmailMessage":
        return EmailMessage(to=self.to, subject=self.subject, body=self.body)


def looks_like_html(body: str) -> bool:
    lowered = (body or "").lower()
    return "<html" in lowered or "<p>" in lowered or "<br" in lowered or "<div" in lowered


def to_html(body: str) -> str:
    """Оборачивает обычный текст в минимальный HTML."""
    if looks_like_html(body):
        return body
    escaped = html.escape(body or "").replace("\n", "<br>")
    return f"<html><body><p>{escaped}</p></body></html>"


class EmailProvider(ABC):
    """Базовый класс email-провайдера"""

    name = "base"
    supports_attachments = False

    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class _HTTPProvider(EmailProvider):
    """Общий код для REST-провайдеров на requests."""

    url = ""

    def __init__(self, timeout: float = 10, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, headers: dict[str, str], payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.session.post(self.url, headers=headers, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(self.name, str(exc)) from exc

        if response.status_code >= 400:
            raise ProviderError(self.name, f"HTTP {response.status_code}: {response.text[:200]}")
        try:
            return response.json()
        except ValueError:
            return {}


class ResendProvider(_HTTPProvider):
    name = "resend"
    url = RESEND_API_URL
    supports_attachments = True

    def __init__(self, api_key: str, from_email: str, reply_to: str = "", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.from_email = from_email
        self.reply_to = reply_to

    def send(self, message: EmailMessage) -> None:
        if not self.api_key:
            raise ProviderNotConfigured(self.name)

        payload: dict[str, Any] = {
            "from": self.from_email,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html_body,
            "text": message.text_body,
        }
        if self.reply_to:
            payload["reply_to"] = self.reply_to
        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": attachment.filename,
                    "content": base64.b64encode(attachment.content).decode("ascii"),
                    "content_type": attachment.mimetype,
                }
                for attachment in message.attachments
            ]

        data = self._post({"Authorization": f"Bearer {self.api_key}"}, payload)
        logger.debug("Resend accepted message %s", data.get("id"))


class PostmarkProvider(_HTTPProvider):
    name = "postmark"
    url = POSTMARK_API_URL

    def __init__(
        self,
        server_token: str,
        from_email: str,
        message_stream: str = "",
        reply_to: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.server_token = server_token
        self.from_email = from_email
        self.message_stream = message_stream
        self.reply_to = reply_to

    def send(self, message: EmailMessage) -> None:
        if not self.server_token:
            raise ProviderNotConfigured(self.name)

        payload: dict[str, Any] = {
            "From": self.from_email,
            "To": message.to,
            "Subject": message.subject,
            "HtmlBody": message.html_body,
            "TextBody": message.text_body,
        }
        if self.reply_to:
            payload["ReplyTo"] = self.reply_to
        if self.message_stream:
            payload["MessageStream"] = self.message_stream

        headers = {
            "Accept": "application/json",
            "X-Postmark-Server-Token": self.server_token,
        }
        data = self._post(headers, payload)
        # Postmark может вернуть 200 с ненулевым ErrorCode
        if data.get("ErrorCode"):
            raise ProviderError(self.name, f"ErrorCode {data['ErrorCode']}: {data.get('Message', '')}")


class SESProvider(EmailProvider):
    name = "ses"

    def __init__(
        self,
        region: str,
        from_email: str,
        access_key_id: str = "",
        secret_access_key: str = "",
        reply_to: str = "",
        timeout: float = 10,
        client: Any = None,
    ) -> None:
        self.region = region
        self.from_email = from_email
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.reply_to = reply_to
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "ses",
                region_name=self.region,
                aws_access_key_id=self.access_key_id or None,
                aws_secret_access_key=self.secret_access_key or None,
                config=BotoConfig(
                    connect_timeout=self.timeout,
                    read_timeout=self.timeout,
                    retries={"max_attempts": 1},
                ),
            )
        return self._client

    def send(self, message: EmailMessage) -> None:
        if not self.region:
            raise ProviderNotConfigured(self.name, "region is not set")

        kwargs: dict[str, Any] = {
            "Source": self.from_email,
            "Destination": {"ToAddresses": [message.to]},
            "Message": {
                "Subject": {"Data": message.subject, "Charset": "UTF-8"},
                "Body": {
                    "Text": {"Data": message.text_body, "Charset": "UTF-8"},
                    "Html": {"Data": message.html_body, "Charset": "UTF-8"},
                },
            },
        }
        if self.reply_to:
            kwargs["ReplyToAddresses"] = [self.reply_to]

        try:
            response = self.client.send_email(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise ProviderError(self.name, str(exc)) from exc
        logger.debug("SES accepted message %s", response.get("MessageId"))


class SMTPProvider(EmailProvider):
    """Отправка через стандартный mail backend Django."""

    name = "smtp"

    def __init__(self, from_email: str, reply_to: str = "", timeout: float = 10) -> None:
        self.from_email = from_email
        self.reply_to = reply_to
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        email = EmailMultiAlternatives(
            subject=message.subject,
            body=message.text_body,
            from_email=self.from_email,
            to=[message.to],
            reply_to=[self.reply_to] if self.reply_to else None,
            connection=get_connection(timeout=self.timeout),
        )
        email.attach_alternative(message.html_body, "text/html")
        try:
            sent = email.send(fail_silently=False)
        except (smtplib.SMTPException, OSError) as exc:
            raise ProviderError(self.name, str(exc)) from exc
        if not sent:
            raise ProviderError(self.name, "message was not accepted")
