import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("rentalhub")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Напоминания о выдаче автомобиля на завтра
    "enqueue-pickup-reminders": {
        "task": "notifications.enqueue_pickup_reminders",
        "schedule": 60.0 * 60,
    },
    # Напоминания о возврате автомобиля на завтра
    "enqueue-return-reminders": {
        "task": "notifications.enqueue_return_reminders",
        "schedule": 60.0 * 60,
    },
}


@app.on_after_configure.connect
def setup_notification_polling(sender, **kwargs):
    """Тик очереди уведомлений каждые NOTIFICATIONS["POLL_INTERVAL_SECONDS"] секунд."""
    from django.conf import settings

    interval = float(settings.NOTIFICATIONS["POLL_INTERVAL_SECONDS"])
    sender.add_periodic_task(
        interval,
        sender.signature("notifications.process_notification_jobs"),
        name="process-notification-jobs",
        expires=max(interval - 1, 1),
    )
