"""Job store: create, query, claim and finalise notification jobs."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any

from django.core.management import call_command  # type: ignore
from django.db import DatabaseError  # type: ignore
from django.db.models import F, Q  # type: ignore
from django.utils import timezone  # type: ignore

from .models import NotificationJob

logger = logging.getLogger(__name__)

# SQLite: "no such table", Postgres: SQLSTATE 42P01 "relation ... does not exist"
MISSING_TABLE_PATTERN = re.compile(r"no such table|(?<!of )relation \"[^\"]+\" does not exist|42p01")

ERROR_MESSAGE_LIMIT = 2000


def is_missing_table(exc: BaseException) -> bool:
    """True, если ошибка БД означает отсутствие таблицы."""
    if not isinstance(exc, DatabaseError):
        return False
    cause = exc.__cause__
    # psycopg2 отдаёт pgcode, psycopg 3 отдаёт sqlstate
    sqlstate = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if sqlstate is not None:
        return sqlstate == "42P01"
    return bool(MISSING_TABLE_PATTERN.search(str(exc).lower()))


class JobStore:
    def __init__(self) -> None:
        self._schema_healed = False

    def ensure_schema(self) -> None:
        # migrate идемпотентен, повторный вызов ничего не меняет
        logger.info("Ensuring notification schema is migrated")
        call_command("migrate", "notifications", interactive=False, verbosity=0)

    def create(self, **fields: Any) -> NotificationJob:
        now = timezone.now()
        fields.update(
            status=NotificationJob.Status.PENDING,
            attempts=0,
            last_attempt_at=None,
            created_at=now,
            updated_at=now,
        )
        return NotificationJob.objects.create(**fields)

    def due(self, now: datetime | None = None):
        """Queryset готовых к отправке задач.

        Сортировка: scheduled_at (NULL первыми), затем created_at и id.
        """
        now = now or timezone.now()
        return (
            NotificationJob.objects.filter(status=NotificationJob.Status.PENDING)
            .filter(Q(send_immediately=True) | Q(scheduled_at__lte=now))
            .order_by(F("scheduled_at").asc(nulls_first=True), "created_at", "id")
        )

    def fetch_due(self, limit: int, now: datetime | None = None) -> list[NotificationJob]:
        try:
            return list(self.due(now)[:limit])
        except DatabaseError as exc:
            if self._schema_healed or not is_missing_table(exc):
                raise
            self._schema_healed = True
            logger.warning("Notification tables are missing (%s), running migrations", exc)
            self.ensure_schema()
            return list(self.due(now)[:limit])

    def claim(self, job: NotificationJob) -> bool:
        """Атомарно переводит pending -> queued. False, если задачу уже забрали."""
        now = timezone.now()
        updated = NotificationJob.objects.filter(
            pk=job.pk, status=NotificationJob.Status.PENDING
        ).update(status=NotificationJob.Status.QUEUED, updated_at=now)
        if updated:
            job.status = NotificationJob.Status.QUEUED
            job.updated_at = now
        return bool(updated)

    def record_outcome(self, job: NotificationJob, sent: bool, error: str = "") -> NotificationJob:
        now = timezone.now()
        status = NotificationJob.Status.SENT if sent else NotificationJob.Status.FAILED
        NotificationJob.objects.filter(pk=job.pk).update(
            status=status,
            attempts=F("attempts") + 1,
            last_attempt_at=now,
            updated_at=now,
            error_message=(error or "")[:ERROR_MESSAGE_LIMIT],
        )
        job.refresh_from_db(fields=["status", "attempts", "last_attempt_at", "updated_at", "error_message"])
        return job
