"""Celery tasks for the notification queue."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.models import Booking

from .dispatcher import PICKUP_REMINDER, RETURN_REMINDER
from .models import NotificationJob
from .poller import build_poller
from .services import schedule_pickup_reminder, schedule_return_reminder

logger = logging.getLogger(__name__)

# Один poller на процесс воркера, создаётся при первом тике
_poller = None


def get_poller():
    global _poller
    if _poller is None:
        _poller = build_poller()
    return _poller


def reset_poller() -> None:
    global _poller
    _poller = None


# ============================================================================
# PERIODIC TASKS (запускаются автоматически через Celery Beat)
# ============================================================================

@shared_task(name="notifications.process_notification_jobs")
def process_notification_jobs() -> dict[str, int]:
    """
    Один тик очереди уведомлений.

    Забирает до BATCH_SIZE готовых задач и последовательно их обрабатывает.

    Returns:
        dict: {"fetched": ..., "sent": ..., "failed": ...}
    """
    result = get_poller().tick()
    return {"fetched": result.fetched, "sent": result.sent, "failed": result.failed}


def _bookings_for_tomorrow(field: str):
    tomorrow = timezone.localdate() + timedelta(days=1)
    return Booking.objects.filter(
        status__in=[Booking.Status.CONFIRMED, Booking.Status.ACTIVE],
        **{f"{field}__date": tomorrow},
    ).select_related("renter")


@shared_task(name="notifications.enqueue_pickup_reminders")
def enqueue_pickup_reminders() -> dict[str, int]:
    """Ставит напоминания о получении авто на завтра."""
    created = 0
    for booking in _bookings_for_tomorrow("pickup_at"):
        # Задача уже создана предыдущим запуском
        if NotificationJob.objects.filter(booking=booking, template_name=PICKUP_REMINDER).exists():
            continue
        schedule_pickup_reminder(booking, at=timezone.now())
        created += 1

    logger.info("Scheduled %s pickup reminders", created)
    return {"created": created}


@shared_task(name="notifications.enqueue_return_reminders")
def enqueue_return_reminders() -> dict[str, int]:
    """Ставит напоминания о возврате авто на завтра."""
    created = 0
    for booking in _bookings_for_tomorrow("return_at"):
        if NotificationJob.objects.filter(booking=booking, template_name=RETURN_REMINDER).exists():
            continue
        schedule_return_reminder(booking, at=timezone.now())
        created += 1

    logger.info("Scheduled %s return reminders", created)
    return {"created": created}
