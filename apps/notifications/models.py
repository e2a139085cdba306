"""Notification models.

``NotificationJob`` is the durable unit of work created by producers and
advanced by the poller; ``Notification`` is the in-app inbox entry created
when the in-app channel delivers; ``EmailTemplate`` stores the subject and
body templates rendered for template-driven jobs.
"""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Notification(models.Model):
    """Сообщение во входящих пользователя."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications'
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"


class NotificationJob(models.Model):
    """Очередь уведомлений: одна запись на одно намерение уведомить."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        QUEUED = "queued", _("Queued")
        SENT = "sent", _("Sent")
        FAILED = "failed", _("Failed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Связи для определения получателя и контекста
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notification_jobs",
    )
    target_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notification_jobs",
    )
    # Явные контакты для гостей без аккаунта
    target_email = models.EmailField(max_length=256, blank=True)
    target_phone = models.CharField(max_length=32, blank=True)

    # Содержимое
    channels = models.JSONField(default=list)
    subject = models.CharField(max_length=256, blank=True)
    message = models.TextField(blank=True)
    template_name = models.CharField(max_length=128, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    # Планирование
    scheduled_at = models.DateTimeField(null=True, blank=True)
    send_immediately = models.BooleanField(default=True)

    # Статус
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    attempts = models.PositiveIntegerField(default=0)
    last_attempt_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=["status", "scheduled_at"], name="notificatio_status_5e0b7c_idx"),
            models.Index(fields=["status", "created_at"], name="notificatio_status_9f31d2_idx"),
        ]
        ordering = ["scheduled_at", "created_at"]

    def __str__(self) -> str:
        target = self.target_user_id or self.target_email or self.target_phone or "-"
        return f"Job {self.id} to {target} via {','.join(self.channels or [])} [{self.status}]"


class EmailTemplate(models.Model):
    """Шаблон письма с плейсхолдерами вида {{name}}."""

    name = models.CharField(max_length=128, unique=True)
    subject = models.CharField(max_length=256)
    body = models.TextField(help_text="Use {{placeholder}} for substitution")
    description = models.CharField(max_length=255, blank=True)
    is_html = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name
