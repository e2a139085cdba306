"""Recipient lookup for notification jobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from django.contrib.auth import get_user_model  # type: ignore

from apps.bookings.models import Booking

if TYPE_CHECKING:  # pragma: no cover
    from apps.users.models import CustomUser
    from .models import NotificationJob

logger = logging.getLogger(__name__)


@dataclass
class JobContext:
    user: Optional["CustomUser"] = None
    booking: Optional[Booking] = None


class ContactResolver:
    """Находит email/телефон получателя для задачи.

    Порядок приоритета одинаков для обоих типов контакта:
    пользователь задачи, явное поле задачи, арендатор брони, гость брони.
    """

    def load(self, job: "NotificationJob") -> JobContext:
        User = get_user_model()
        user = None
        booking = None
        if job.target_user_id:
            user = User.objects.filter(pk=job.target_user_id).first()
            if user is None:
                logger.warning("Job %s references missing user %s", job.id, job.target_user_id)
        if job.booking_id:
            booking = Booking.objects.select_related("renter").filter(pk=job.booking_id).first()
            if booking is None:
                logger.warning("Job %s references missing booking %s", job.id, job.booking_id)
        return JobContext(user=user, booking=booking)

    def email(self, job: "NotificationJob", ctx: JobContext) -> str | None:
        return self._first(
            getattr(ctx.user, "email", None),
            job.target_email,
            getattr(getattr(ctx.booking, "renter", None), "email", None),
            getattr(ctx.booking, "guest_email", None),
        )

    def phone(self, job: "NotificationJob", ctx: JobContext) -> str | None:
        return self._first(
            getattr(ctx.user, "phone", None),
            job.target_phone,
            getattr(getattr(ctx.booking, "renter", None), "phone", None),
            getattr(ctx.booking, "guest_phone", None),
        )

    @staticmethod
    def _first(*candidates) -> str | None:
        for value in candidates:
            if value and str(value).strip():
                return str(value).strip()
        return None
