"""Producer side of the notification queue.

Business workflows call these functions to record an intent to notify.
Creation is synchronous, delivery happens later in the poller; the
caller only gets the job id back.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore

from .channels import Channel, parse_channels
from .dispatcher import (
    DEPOSIT_REFUND_PROCESSED,
    OWNER_ACCOUNT_APPROVED,
    PICKUP_REMINDER,
    RETURN_REMINDER,
)
from .exceptions import MissingRecipientError
from .models import NotificationJob
from .store import JobStore

if TYPE_CHECKING:  # pragma: no cover
    from apps.users.models import CustomUser
    from apps.bookings.models import Booking

logger = logging.getLogger(__name__)

REMINDER_LEAD_TIME = timedelta(hours=24)


def make_json_safe(value: Any) -> Any:
    """Приводит значение к виду, который можно сохранить в JSONField."""
    if isinstance(value, dict):
        return {str(key): make_json_safe(val) for key, val in value.items()}

    if isinstance(value, (list, tuple, set)):
        return [make_json_safe(item) for item in value]

    if isinstance(value, models.Model):
        return {"model": value._meta.label_lower, "pk": value.pk}

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, Decimal):
        return float(value)

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value

    return str(value)


def enqueue_notification(
    channels: Iterable[str],
    *,
    subject: str = "",
    message: str = "",
    user: "CustomUser | None" = None,
    booking: "Booking | None" = None,
    email: str = "",
    phone: str = "",
    template_name: str = "",
    metadata: dict | None = None,
    scheduled_at: datetime | None = None,
    require_recipient: bool = False,
    store: JobStore | None = None,
) -> uuid.UUID:
    """
    Создаёт задачу уведомления со статусом pending.

    Args:
        channels: Каналы доставки (inapp, email, whatsapp, sms, push)
        subject: Тема / заголовок
        message: Текст сообщения
        user: Пользователь-получатель
        booking: Бронирование для поиска контактов
        email, phone: Явные контакты (гости без аккаунта)
        template_name: Имя шаблона для специальных событий
        metadata: Параметры шаблона
        scheduled_at: Время отправки; None означает отправить сразу
        require_recipient: Бросить MissingRecipientError, если получателя нет

    Returns:
        UUID: идентификатор задачи
    """
    parsed = parse_channels(channels, strict=True)
    if not parsed.channels and not template_name:
        raise ValueError("At least one notification channel is required")

    if not _has_recipient(parsed.channels, user, booking, email, phone):
        detail = f"Notification '{subject or template_name}' has no resolvable recipient"
        if require_recipient:
            raise MissingRecipientError(detail)
        logger.warning(detail)

    now = timezone.now()
    send_immediately = scheduled_at is None or scheduled_at <= now

    job = (store or JobStore()).create(
        channels=[channel.value for channel in parsed.channels],
        subject=subject or "",
        message=message or "",
        target_user=user,
        booking=booking,
        target_email=email or "",
        target_phone=phone or "",
        template_name=template_name or "",
        metadata=make_json_safe(metadata or {}),
        scheduled_at=scheduled_at,
        send_immediately=send_immediately,
    )
    logger.info(
        "Notification job %s created via %s (%s)",
        job.id,
        ",".join(job.channels) or "-",
        "immediate" if send_immediately else f"scheduled for {scheduled_at:%Y-%m-%d %H:%M}",
    )
    return job.id


def _has_recipient(channels, user, booking, email, phone) -> bool:
    if Channel.PUSH in channels:
        return True
    if user is not None or booking is not None:
        return True
    return bool(
        (email and Channel.EMAIL in channels)
        or (phone and (Channel.WHATSAPP in channels or Channel.SMS in channels))
    )


# ============================================================================
# SHORTCUT PRODUCERS
# ============================================================================

def notify_owner_account_approved(
    owner: "CustomUser",
    *,
    login_url: str = "",
    dashboard_url: str = "",
) -> uuid.UUID:
    """Письмо владельцу об одобрении аккаунта."""
    metadata = {"event": OWNER_ACCOUNT_APPROVED, "ownerName": owner.display_name}
    if login_url:
        metadata["loginUrl"] = login_url
    if dashboard_url:
        metadata["dashboardUrl"] = dashboard_url

    return enqueue_notification(
        [Channel.EMAIL],
        subject="Your owner account has been approved",
        message=f"Hello {owner.display_name}, your owner account has been approved.",
        user=owner,
        email=owner.email,
        template_name=OWNER_ACCOUNT_APPROVED,
        metadata=metadata,
        require_recipient=True,
    )


def schedule_pickup_reminder(booking: "Booking", at: datetime | None = None) -> uuid.UUID:
    """Напоминание о получении авто, по умолчанию за сутки до pickup_at."""
    at = at or booking.pickup_at - REMINDER_LEAD_TIME
    return enqueue_notification(
        [Channel.EMAIL, Channel.WHATSAPP],
        subject=f"Pickup reminder for booking {booking.booking_reference}",
        message=(
            f"Your rental {booking.booking_reference} starts on "
            f"{booking.pickup_at:%b %d, %Y at %H:%M}. "
            f"Pickup location: {booking.pickup_location or 'TBD'}."
        ),
        user=booking.renter,
        booking=booking,
        template_name=PICKUP_REMINDER,
        metadata={"event": PICKUP_REMINDER, "bookingId": booking.pk},
        scheduled_at=at,
    )


def schedule_return_reminder(booking: "Booking", at: datetime | None = None) -> uuid.UUID:
    """Напоминание о возврате авто, по умолчанию за сутки до return_at."""
    at = at or booking.return_at - REMINDER_LEAD_TIME
    return enqueue_notification(
        [Channel.EMAIL, Channel.WHATSAPP],
        subject=f"Return reminder for booking {booking.booking_reference}",
        message=(
            f"Your rental {booking.booking_reference} ends on "
            f"{booking.return_at:%b %d, %Y at %H:%M}. "
            f"Return location: {booking.return_location or 'TBD'}."
        ),
        user=booking.renter,
        booking=booking,
        template_name=RETURN_REMINDER,
        metadata={"event": RETURN_REMINDER, "bookingId": booking.pk},
        scheduled_at=at,
    )


def notify_deposit_refund_processed(
    booking: "Booking",
    amount: Decimal,
    currency: str = "",
    reference: str = "",
) -> uuid.UUID:
    currency = currency or booking.currency
    return enqueue_notification(
        [Channel.EMAIL, Channel.WHATSAPP],
        subject=f"Deposit refund processed for booking {booking.booking_reference}",
        message=(
            f"Your refund of {currency} {Decimal(amount):.2f} for booking "
            f"{booking.booking_reference} has been processed."
        ),
        user=booking.renter,
        booking=booking,
        template_name=DEPOSIT_REFUND_PROCESSED,
        metadata={
            "event": DEPOSIT_REFUND_PROCESSED,
            "bookingId": booking.pk,
            "amount": Decimal(amount),
            "currency": currency,
            "bookingReference": reference or booking.booking_reference,
        },
    )
