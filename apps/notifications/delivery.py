"""Ordered email provider fallback chain."""

from __future__ import annotations

from typing import Callable, Iterable, Sequence, TypeVar

import structlog
from django.conf import settings  # type: ignore

from apps.bookings.models import Booking

from .email_providers import (
    Attachment,
    EmailMessage,
    EmailProvider,
    PostmarkProvider,
    ResendProvider,
    SESProvider,
    SMTPProvider,
)
from .exceptions import EmailDeliveryFailed, MissingRecipientError

logger = structlog.get_logger(__name__)

P = TypeVar("P")


def attempt_in_order(
    providers: Iterable[P],
    action: Callable[[P], None],
    *,
    purpose: str,
    recipient: str,
) -> P:
    """Вызывает action для провайдеров по порядку до первого успеха.

    Следующий провайдер пробуется только если текущий бросил исключение.
    Если упали все, поднимается EmailDeliveryFailed со всеми ошибками.
    """
    errors: list[Exception] = []
    for provider in providers:
        name = getattr(provider, "name", repr(provider))
        try:
            action(provider)
        except Exception as exc:
            errors.append(exc)
            logger.warning(
                "email_provider_failed",
                provider=name,
                purpose=purpose,
                recipient=recipient,
                error=str(exc),
            )
            continue
        if errors:
            logger.info("email_fallback_succeeded", provider=name, purpose=purpose, recipient=recipient)
        else:
            logger.info("email_sent", provider=name, purpose=purpose, recipient=recipient)
        return provider

    logger.error("email_all_providers_failed", purpose=purpose, recipient=recipient, attempts=len(errors))
    raise EmailDeliveryFailed(recipient, errors)


class EmailDeliveryChain:
    """Resend -> Postmark -> SES -> SMTP; the first provider that does not raise wins."""

    def __init__(self, providers: Sequence[EmailProvider]) -> None:
        self.providers = list(providers)

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self.providers]

    def deliver(self, message: EmailMessage, purpose: str = "notification") -> EmailProvider:
        return attempt_in_order(
            self.providers,
            lambda provider: provider.send(message),
            purpose=purpose,
            recipient=message.to,
        )

    def send(self, to: str, subject: str, body: str, purpose: str = "notification") -> str:
        provider = self.deliver(EmailMessage(to=to, subject=subject, body=body), purpose)
        return provider.name

    def send_with_attachments(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: Sequence[Attachment],
        purpose: str = "attachment",
    ) -> str:
        message = EmailMessage(to=to, subject=subject, body=body, attachments=tuple(attachments))
        capable = [provider for provider in self.providers if provider.supports_attachments]
        if message.attachments and capable:
            try:
                return attempt_in_order(
                    capable,
                    lambda provider: provider.send(message),
                    purpose=purpose,
                    recipient=to,
                ).name
            except EmailDeliveryFailed:
                logger.warning("email_attachments_dropped", recipient=to, purpose=purpose)
        elif message.attachments:
            logger.warning("email_no_attachment_provider", recipient=to, purpose=purpose)

        return self.deliver(message.without_attachments(), purpose).name

    # ------------------------------------------------------------------
    # Convenience senders
    # ------------------------------------------------------------------

    def send_verification_email(self, to: str, name: str, verification_url: str) -> str:
        brand = getattr(settings, "BRAND_NAME", "RentalHub")
        subject = f"Verify your {brand} email address"
        body = (
            f"Hello {name or 'there'},\n\n"
            f"Please confirm your email address by opening the link below:\n{verification_url}\n\n"
            "If you did not create an account, you can ignore this message."
        )
        return self.send(to, subject, body, purpose="verification")

    def send_booking_confirmation(self, booking: Booking) -> str:
        to = _booking_email(booking)
        subject = f"Booking {booking.booking_reference} confirmed"
        body = (
            f"Hello {booking.customer_name},\n\n"
            f"Your booking {booking.booking_reference} for {booking.vehicle_name or 'your vehicle'} is confirmed.\n"
            f"Pickup: {booking.pickup_at:%b %d, %Y %H:%M} at {booking.pickup_location or 'TBD'}\n"
            f"Return: {booking.return_at:%b %d, %Y %H:%M} at {booking.return_location or 'TBD'}\n"
            f"Total: {booking.currency} {booking.total_price}"
        )
        return self.send(to, subject, body, purpose="booking_confirmation")

    def send_booking_cancellation(self, booking: Booking, reason: str = "") -> str:
        to = _booking_email(booking)
        subject = f"Booking {booking.booking_reference} cancelled"
        body = f"Hello {booking.customer_name},\n\nYour booking {booking.booking_reference} has been cancelled."
        if reason:
            body += f"\nReason: {reason}"
        return self.send(to, subject, body, purpose="booking_cancellation")

    def send_payout_notification(self, to: str, owner_name: str, amount, currency: str, reference: str = "") -> str:
        subject = f"Payout of {currency} {amount} processed"
        body = f"Hello {owner_name or 'there'},\n\nA payout of {currency} {amount} has been sent to your account."
        if reference:
            body += f"\nReference: {reference}"
        return self.send(to, subject, body, purpose="payout")

    def send_password_reset(self, to: str, reset_url: str) -> str:
        brand = getattr(settings, "BRAND_NAME", "RentalHub")
        subject = f"Reset your {brand} password"
        body = (
            "We received a request to reset your password.\n"
            f"Open the link below to choose a new one:\n{reset_url}\n\n"
            "If you did not request this, no action is needed."
        )
        return self.send(to, subject, body, purpose="password_reset")

    # ------------------------------------------------------------------

    @classmethod
    def from_settings(cls, timeout: float | None = None) -> "EmailDeliveryChain":
        """Собирает цепочку из settings: выключенные провайдеры не добавляются."""
        timeout = timeout if timeout is not None else getattr(settings, "EMAIL_TIMEOUT", 10)
        reply_to = getattr(settings, "EMAIL_REPLY_TO", "")
        from_email = settings.DEFAULT_FROM_EMAIL
        providers: list[EmailProvider] = []

        if getattr(settings, "EMAIL_RESEND_ENABLED", False):
            providers.append(
                ResendProvider(
                    api_key=getattr(settings, "RESEND_API_KEY", ""),
                    from_email=getattr(settings, "RESEND_FROM", "") or from_email,
                    reply_to=reply_to,
                    timeout=timeout,
                )
            )
        if getattr(settings, "EMAIL_POSTMARK_ENABLED", False):
            providers.append(
                PostmarkProvider(
                    server_token=getattr(settings, "POSTMARK_SERVER_TOKEN", ""),
                    from_email=from_email,
                    message_stream=getattr(settings, "POSTMARK_MESSAGE_STREAM", ""),
                    reply_to=reply_to,
                    timeout=timeout,
                )
            )
        if getattr(settings, "EMAIL_SES_ENABLED", False):
            providers.append(
                SESProvider(
                    region=getattr(settings, "AWS_SES_REGION", ""),
                    from_email=from_email,
                    access_key_id=getattr(settings, "AWS_ACCESS_KEY_ID", ""),
                    secret_access_key=getattr(settings, "AWS_SECRET_ACCESS_KEY", ""),
                    reply_to=reply_to,
                    timeout=timeout,
                )
            )
        # SMTP всегда последний
        providers.append(SMTPProvider(from_email=from_email, reply_to=reply_to, timeout=timeout))
        return cls(providers)


def _booking_email(booking: Booking) -> str:
    email = getattr(booking.renter, "email", None) or booking.guest_email
    if not email:
        raise MissingRecipientError(f"Booking {booking.booking_reference} has no contact email")
    return email
