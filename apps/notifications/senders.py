"""Channel senders.

Every sender exposes ``send(recipient, subject, body)`` which returns on
success and raises on failure. The dispatcher only observes that outcome.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from .channels import Channel
from .delivery import EmailDeliveryChain
from .whatsapp import WhatsAppCloudClient

logger = logging.getLogger(__name__)


class BaseSender(ABC):
    """Базовый класс для отправителей"""

    channel: Channel

    @abstractmethod
    def send(self, recipient: Any, subject: str, body: str) -> None:
        pass


class InAppSender(BaseSender):
    """Запись во входящие пользователя. recipient = пользователь."""

    channel = Channel.INAPP

    def send(self, recipient, subject, body):
        from .models import Notification

        Notification.objects.create(
            user=recipient,
            title=subject or "Notification",
            message=body or "",
        )
        logger.info("In-app notification created for user %s: %s", recipient.pk, subject)


class EmailSender(BaseSender):
    """Отправка через цепочку email-провайдеров"""

    channel = Channel.EMAIL

    def __init__(self, chain: EmailDeliveryChain) -> None:
        self.chain = chain

    def send(self, recipient, subject, body):
        self.chain.send(recipient, subject or "Notification", body or "")


class WhatsAppSender(BaseSender):
    """Отправка через WhatsApp"""

    channel = Channel.WHATSAPP

    def __init__(self, client: WhatsAppCloudClient) -> None:
        self.client = client

    def send(self, recipient, subject, body):
        # Тема в WhatsApp не передаётся; пустое тело заменяется темой
        self.client.send_text(recipient, body or subject or "")


class SMSSender(BaseSender):
    """Заглушка: SMS-провайдер не подключён."""

    channel = Channel.SMS

    def send(self, recipient, subject, body):
        logger.warning("SMS requested to %s but no SMS provider is configured (placeholder)", recipient)


class PushSender(BaseSender):
    """Заглушка для push-уведомлений."""

    channel = Channel.PUSH

    def send(self, recipient, subject, body):
        logger.warning("Push requested for %s but push delivery is not implemented (placeholder)", recipient)
