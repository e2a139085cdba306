"""Fakes shared by the notification tests."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from apps.bookings.models import Booking
from apps.notifications.channels import Channel
from apps.notifications.conf import NotificationSettings
from apps.notifications.contacts import ContactResolver
from apps.notifications.delivery import EmailDeliveryChain
from apps.notifications.dispatcher import NotificationDispatcher
from apps.notifications.email_providers import EmailProvider
from apps.notifications.exceptions import ProviderError
from apps.notifications.senders import BaseSender, EmailSender, InAppSender, PushSender, SMSSender
from apps.notifications.store import JobStore
from apps.notifications.templates import TemplateRenderer
from apps.users.models import CustomUser


class FakeProvider(EmailProvider):
    def __init__(self, name: str, fail: bool = False, attachments: bool = False) -> None:
        self.name = name
        self.fail = fail
        self.supports_attachments = attachments
        self.sent = []
        self.calls = 0

    def send(self, message):
        self.calls += 1
        if self.fail:
            raise ProviderError(self.name, "boom")
        self.sent.append(message)


class RecordingSender(BaseSender):
    channel = Channel.WHATSAPP

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent = []

    def send(self, recipient, subject, body):
        if self.fail:
            raise ProviderError("whatsapp", "down")
        self.sent.append((recipient, subject, body))


def make_dispatcher(providers=None, whatsapp=None, config=None, store=None, renderer=None):
    chain = EmailDeliveryChain(providers if providers is not None else [FakeProvider("smtp")])
    senders = {
        Channel.INAPP: InAppSender(),
        Channel.EMAIL: EmailSender(chain),
        Channel.WHATSAPP: whatsapp if whatsapp is not None else RecordingSender(),
        Channel.SMS: SMSSender(),
        Channel.PUSH: PushSender(),
    }
    return NotificationDispatcher(
        store=store or JobStore(),
        resolver=ContactResolver(),
        senders=senders,
        renderer=renderer or TemplateRenderer(),
        config=config or NotificationSettings(support_email="help@example.com", support_phone="+233200000000"),
    )


def create_user(email="renter@example.com", phone="+233241111111", **extra) -> CustomUser:
    return CustomUser.objects.create_user(email=email, phone=phone, password="Pass12345", **extra)


def create_booking(renter=None, **extra) -> Booking:
    pickup = extra.pop("pickup_at", timezone.now() + timedelta(days=1))
    fields = {
        "renter": renter,
        "vehicle_make": "Toyota",
        "vehicle_model": "Corolla",
        "pickup_at": pickup,
        "return_at": extra.pop("return_at", pickup + timedelta(days=3)),
        "pickup_location": "Kotoka Airport",
        "return_location": "Osu Office",
        "total_price": Decimal("450.00"),
        "status": Booking.Status.CONFIRMED,
    }
    fields.update(extra)
    return Booking.objects.create(**fields)
