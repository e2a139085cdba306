"""Admin registrations for the notification queue."""

from __future__ import annotations

from django.contrib import admin
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .models import EmailTemplate, Notification, NotificationJob


@admin.register(NotificationJob)
class NotificationJobAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "template_name",
        "status",
        "attempts",
        "target_user",
        "target_email",
        "scheduled_at",
        "created_at",
    )
    list_filter = ("status", "send_immediately", "template_name")
    search_fields = ("id", "target_email", "target_phone", "subject", "booking__booking_reference")
    raw_id_fields = ("target_user", "booking")
    readonly_fields = ("id", "attempts", "last_attempt_at", "error_message", "created_at", "updated_at")
    ordering = ("-created_at",)
    actions = ["requeue_jobs"]

    @admin.action(description=_("Requeue selected failed jobs"))
    def requeue_jobs(self, request, queryset):  # type: ignore
        # Ручной повтор: автоматического возврата в pending нет
        updated = queryset.filter(status=NotificationJob.Status.FAILED).update(
            status=NotificationJob.Status.PENDING,
            send_immediately=True,
            updated_at=timezone.now(),
        )
        self.message_user(request, _("%(count)d job(s) requeued") % {"count": updated})


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "title", "is_read", "created_at")
    list_filter = ("is_read",)
    search_fields = ("title", "message", "user__email")
    raw_id_fields = ("user",)


@admin.register(EmailTemplate)
class EmailTemplateAdmin(admin.ModelAdmin):
    list_display = ("name", "subject", "is_active", "is_html", "updated_at")
    list_filter = ("is_active", "is_html")
    search_fields = ("name", "subject", "description")
