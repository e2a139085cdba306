"""Per-job processing: recipient lookup, channel fan-out and final status.

A job either goes through one of the template shortcuts (events with
their own rendering) or through the generic fan-out over ``job.channels``.
The job is sent if at least one channel delivered. Any unexpected error
marks the job failed without affecting other jobs of the batch.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

import structlog

from apps.bookings.models import Booking

from .channels import Channel, parse_channels
from .conf import NotificationSettings
from .contacts import ContactResolver, JobContext
from .delivery import EmailDeliveryChain
from .models import NotificationJob
from .senders import (
    BaseSender,
    EmailSender,
    InAppSender,
    PushSender,
    SMSSender,
    WhatsAppSender,
)
from .store import JobStore
from .templates import TemplateRenderer
from .whatsapp import WhatsAppCloudClient

logger = structlog.get_logger(__name__)


OWNER_ACCOUNT_APPROVED = "owner_account_approved"
PICKUP_REMINDER = "pickup_reminder"
RETURN_REMINDER = "return_reminder"
DEPOSIT_REFUND_PROCESSED = "deposit_refund_processed"


PICKUP_WHATSAPP_TEXT = (
    "⏰ PICKUP REMINDER\n\n"
    "Your rental starts tomorrow!\n\n"
    "Ref: {booking_reference}\n"
    "Vehicle: {vehicle_name}\n\n"
    "📅 Pickup: {pickup_date} @ {pickup_time}\n"
    "📍 Location: {pickup_location}\n\n"
    "See you soon!"
)

RETURN_WHATSAPP_TEXT = (
    "⏰ RETURN REMINDER\n\n"
    "Your rental ends tomorrow!\n\n"
    "Ref: {booking_reference}\n"
    "Vehicle: {vehicle_name}\n\n"
    "📅 Return: {return_date} @ {return_time}\n"
    "📍 Location: {return_location}\n\n"
    "Please ensure the vehicle is returned on time with the same fuel level.\n\n"
    "Thank you!"
)

REFUND_WHATSAPP_TEXT = (
    "💰 Deposit Refund Processed\n\n"
    "Your refund of {currency} {amount} for booking {booking_reference} "
    "has been processed successfully.\n\n"
    "Thank you for choosing {brand_name}!"
)


class NotificationDispatcher:
    def __init__(
        self,
        store: JobStore,
        resolver: ContactResolver,
        senders: Mapping[Channel, BaseSender],
        renderer: TemplateRenderer,
        config: NotificationSettings,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.senders = dict(senders)
        self.renderer = renderer
        self.config = config
        self.shortcuts: dict[str, Callable[[NotificationJob, JobContext, Any], bool]] = {
            OWNER_ACCOUNT_APPROVED: self._owner_account_approved,
            PICKUP_REMINDER: self._pickup_reminder,
            RETURN_REMINDER: self._return_reminder,
            DEPOSIT_REFUND_PROCESSED: self._deposit_refund_processed,
        }

    def process(self, job: NotificationJob) -> bool:
        """Обрабатывает одну задачу и записывает итоговый статус."""
        log = logger.bind(job_id=str(job.id), template=job.template_name or None)
        try:
            ctx = self.resolver.load(job)

            shortcut = self.shortcuts.get(job.template_name or "")
            if shortcut is not None:
                try:
                    delivered = shortcut(job, ctx, log)
                except Exception:
                    log.exception("template_shortcut_failed")
                    delivered = False
                if delivered:
                    self.store.record_outcome(job, sent=True)
                    log.info("notification_job_sent", path="template")
                    return True
                log.info("template_shortcut_fallthrough")

            sent, errors = self._fan_out(job, ctx, log)
            self.store.record_outcome(job, sent=sent, error="; ".join(errors))
            if sent:
                log.info("notification_job_sent", path="channels")
            else:
                log.warning("notification_job_failed", errors=errors)
            return sent
        except Exception as exc:
            log.exception("notification_job_crashed")
            self.store.record_outcome(job, sent=False, error=f"{type(exc).__name__}: {exc}")
            return False

    # ------------------------------------------------------------------
    # Generic fan-out
    # ------------------------------------------------------------------

    def _fan_out(self, job: NotificationJob, ctx: JobContext, log) -> tuple[bool, list[str]]:
        parsed = parse_channels(job.channels or [], strict=False)
        for name in parsed.unknown:
            log.warning("unknown_channel", channel=name)

        event = self._event_name(job)
        delivered = False
        errors: list[str] = []
        for channel in parsed.channels:
            if not self._channel_allowed(event, channel, log):
                continue
            recipient = self._recipient(channel, job, ctx)
            if recipient is None:
                log.info("channel_skipped_no_recipient", channel=channel.value)
                continue
            if self._send(channel, recipient, job.subject, job.message, log):
                delivered = True
            else:
                errors.append(f"{channel.value} failed")

        if not delivered and not errors:
            errors.append("no supported channels" if not parsed.channels else "no recipient resolved")
        return delivered, errors

    def _recipient(self, channel: Channel, job: NotificationJob, ctx: JobContext):
        if channel == Channel.INAPP:
            return ctx.user
        if channel == Channel.EMAIL:
            return self.resolver.email(job, ctx)
        if channel in (Channel.WHATSAPP, Channel.SMS):
            return self.resolver.phone(job, ctx)
        # push не требует контакта
        return ctx.user or str(job.id)

    def _send(self, channel: Channel, recipient, subject: str, body: str, log) -> bool:
        sender = self.senders.get(channel)
        if sender is None:
            log.warning("channel_sender_missing", channel=channel.value)
            return False
        try:
            sender.send(recipient, subject, body)
        except Exception as exc:
            log.warning("channel_send_failed", channel=channel.value, error=str(exc))
            return False
        log.info("channel_sent", channel=channel.value)
        return True

    def _channel_allowed(self, event: str, channel: Channel, log) -> bool:
        if self.config.channel_enabled(event, channel):
            return True
        log.info("channel_disabled", channel=channel.value, event_name=event)
        return False

    @staticmethod
    def _event_name(job: NotificationJob) -> str:
        metadata = job.metadata if isinstance(job.metadata, dict) else {}
        return str(metadata.get("event") or job.template_name or "")

    # ------------------------------------------------------------------
    # Template shortcuts
    # ------------------------------------------------------------------

    def _deliver_rendered(self, job, ctx, log, event, template, placeholders, whatsapp_text=None) -> bool:
        """Email по шаблону и, если задан текст, WhatsApp. True если ушёл хотя бы один."""
        delivered = False
        email = self.resolver.email(job, ctx)
        if email and self._channel_allowed(event, Channel.EMAIL, log):
            rendered = self.renderer.render(template, placeholders)
            delivered |= self._send(Channel.EMAIL, email, rendered.subject, rendered.body, log)

        if whatsapp_text is not None and self._channel_allowed(event, Channel.WHATSAPP, log):
            phone = self.resolver.phone(job, ctx)
            if phone:
                delivered |= self._send(Channel.WHATSAPP, phone, "", whatsapp_text.format(**placeholders), log)
        return delivered

    def _owner_account_approved(self, job, ctx, log) -> bool:
        metadata = job.metadata or {}
        email = self.resolver.email(job, ctx)
        if not email:
            return False
        placeholders = {
            "ownerName": metadata.get("ownerName") or getattr(ctx.user, "display_name", "") or "Owner",
            "email": email,
            "loginUrl": metadata.get("loginUrl") or self.config.login_url,
            "dashboardUrl": metadata.get("dashboardUrl") or self.config.owner_dashboard_url,
            "brand_name": self.config.brand_name,
        }
        return self._deliver_rendered(job, ctx, log, OWNER_ACCOUNT_APPROVED, "owner_account_approved", placeholders)

    def _pickup_reminder(self, job, ctx, log) -> bool:
        booking = self._booking(job, ctx)
        if booking is None:
            return False
        placeholders = self._booking_placeholders(booking)
        placeholders.update(
            pickup_date=f"{booking.pickup_at:%b %d, %Y}",
            pickup_time=f"{booking.pickup_at:%H:%M}",
            pickup_location=booking.pickup_location or "TBD",
        )
        return self._deliver_rendered(
            job, self._with_booking(ctx, booking), log,
            PICKUP_REMINDER, "trip_pickup_reminder", placeholders, PICKUP_WHATSAPP_TEXT,
        )

    def _return_reminder(self, job, ctx, log) -> bool:
        booking = self._booking(job, ctx)
        if booking is None:
            return False
        placeholders = self._booking_placeholders(booking)
        placeholders.update(
            return_date=f"{booking.return_at:%b %d, %Y}",
            return_time=f"{booking.return_at:%H:%M}",
            return_location=booking.return_location or "TBD",
        )
        return self._deliver_rendered(
            job, self._with_booking(ctx, booking), log,
            RETURN_REMINDER, "trip_return_reminder", placeholders, RETURN_WHATSAPP_TEXT,
        )

    def _deposit_refund_processed(self, job, ctx, log) -> bool:
        booking = self._booking(job, ctx)
        if booking is None:
            return False
        metadata = job.metadata or {}
        placeholders = self._booking_placeholders(booking)
        placeholders.update(
            amount=_format_amount(metadata.get("amount")),
            currency=metadata.get("currency") or booking.currency,
            booking_reference=metadata.get("bookingReference") or booking.booking_reference,
            booking_id=str(booking.pk),
        )
        return self._deliver_rendered(
            job, self._with_booking(ctx, booking), log,
            DEPOSIT_REFUND_PROCESSED, "deposit_refund_processed", placeholders, REFUND_WHATSAPP_TEXT,
        )

    def _booking(self, job: NotificationJob, ctx: JobContext) -> Booking | None:
        if ctx.booking is not None:
            return ctx.booking
        booking_id = (job.metadata or {}).get("bookingId")
        if not booking_id:
            return None
        try:
            return Booking.objects.select_related("renter").filter(pk=booking_id).first()
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _with_booking(ctx: JobContext, booking: Booking) -> JobContext:
        return JobContext(user=ctx.user, booking=booking)

    def _booking_placeholders(self, booking: Booking) -> dict[str, Any]:
        return {
            "customer_name": booking.customer_name,
            "booking_reference": booking.booking_reference,
            "vehicle_make": booking.vehicle_make,
            "vehicle_model": booking.vehicle_model,
            "vehicle_name": booking.vehicle_name,
            "support_phone": self.config.support_phone,
            "support_email": self.config.support_email,
            "brand_name": self.config.brand_name,
        }


def _format_amount(value) -> str:
    try:
        return f"{Decimal(str(value)):.2f}"
    except (InvalidOperation, ValueError):
        return "0.00"


def build_dispatcher(
    config: NotificationSettings | None = None,
    store: JobStore | None = None,
) -> NotificationDispatcher:
    """Собирает диспетчер со всеми отправителями из settings."""
    config = config or NotificationSettings.from_django()
    chain = EmailDeliveryChain.from_settings(timeout=config.send_timeout)
    whatsapp = WhatsAppCloudClient.from_settings(timeout=config.send_timeout)
    senders: dict[Channel, BaseSender] = {
        Channel.INAPP: InAppSender(),
        Channel.EMAIL: EmailSender(chain),
        Channel.WHATSAPP: WhatsAppSender(whatsapp),
        Channel.SMS: SMSSender(),
        Channel.PUSH: PushSender(),
    }
    return NotificationDispatcher(
        store=store or JobStore(),
        resolver=ContactResolver(),
        senders=senders,
        renderer=TemplateRenderer(),
        config=config,
    )
