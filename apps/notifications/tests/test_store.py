from __future__ import annotations

from datetime import timedelta
from unittest import mock

import pytest
from django.db import OperationalError, ProgrammingError
from django.utils import timezone

from apps.notifications.models import NotificationJob
from apps.notifications.store import JobStore, is_missing_table


@pytest.mark.django_db
def test_create_forces_pending_and_timestamps(store):
    job = store.create(
        channels=["email"],
        target_email="a@example.com",
        status=NotificationJob.Status.SENT,
        attempts=7,
    )

    job.refresh_from_db()
    assert job.status == NotificationJob.Status.PENDING
    assert job.attempts == 0
    assert job.created_at == job.updated_at
    assert job.last_attempt_at is None


@pytest.mark.django_db
def test_fetch_due_respects_schedule(store):
    at = timezone.now() + timedelta(hours=2)
    job = store.create(channels=["email"], target_email="a@example.com", scheduled_at=at, send_immediately=False)

    assert store.fetch_due(10, now=at - timedelta(seconds=1)) == []
    assert [j.pk for j in store.fetch_due(10, now=at)] == [job.pk]


@pytest.mark.django_db
def test_fetch_due_orders_immediate_first_then_created_at(store):
    now = timezone.now()
    late = store.create(channels=["push"], scheduled_at=now - timedelta(minutes=1), send_immediately=False)
    second = store.create(channels=["push"])
    first = store.create(channels=["push"])
    NotificationJob.objects.filter(pk=first.pk).update(created_at=now - timedelta(minutes=10))
    NotificationJob.objects.filter(pk=second.pk).update(created_at=now - timedelta(minutes=5))

    ordered = [job.pk for job in store.fetch_due(10, now=now)]

    assert ordered == [first.pk, second.pk, late.pk]


@pytest.mark.django_db
def test_fetch_due_limits_batch_and_skips_non_pending(store):
    jobs = [store.create(channels=["push"]) for _ in range(4)]
    NotificationJob.objects.filter(pk=jobs[0].pk).update(status=NotificationJob.Status.FAILED)

    due = store.fetch_due(2)

    assert len(due) == 2
    assert jobs[0].pk not in {job.pk for job in due}


@pytest.mark.django_db
def test_claim_is_conditional(store):
    job = store.create(channels=["push"])
    stale_copy = NotificationJob.objects.get(pk=job.pk)

    assert store.claim(job) is True
    assert job.status == NotificationJob.Status.QUEUED
    assert store.claim(stale_copy) is False


@pytest.mark.django_db
def test_record_outcome_increments_attempts(store):
    job = store.create(channels=["push"])
    store.claim(job)

    store.record_outcome(job, sent=False, error="smtp down")

    assert job.status == NotificationJob.Status.FAILED
    assert job.attempts == 1
    assert job.error_message == "smtp down"
    assert job.last_attempt_at is not None
    assert job.created_at <= job.updated_at


def test_is_missing_table_detection():
    assert is_missing_table(OperationalError("no such table: notifications_notificationjob"))
    assert is_missing_table(ProgrammingError('relation "notifications_notificationjob" does not exist'))
    assert not is_missing_table(OperationalError("database is locked"))
    assert not is_missing_table(RuntimeError("no such table"))


def test_missing_column_is_not_a_missing_table():
    assert not is_missing_table(ProgrammingError('column "error_message" does not exist'))
    assert not is_missing_table(
        ProgrammingError('column "error_message" of relation "notifications_notificationjob" does not exist')
    )
    assert not is_missing_table(OperationalError("no such column: notifications_notificationjob.attempts"))


def _with_sqlstate(exc, code):
    cause = Exception("driver error")
    cause.pgcode = code
    exc.__cause__ = cause
    return exc


def test_is_missing_table_trusts_driver_sqlstate():
    assert is_missing_table(_with_sqlstate(ProgrammingError("undefined table"), "42P01"))
    # 42703 undefined_column
    assert not is_missing_table(
        _with_sqlstate(ProgrammingError('relation "notifications_notificationjob" does not exist'), "42703")
    )


@pytest.mark.django_db
def test_fetch_due_bootstraps_schema_once(store):
    missing = OperationalError("no such table: notifications_notificationjob")
    with mock.patch.object(store, "ensure_schema") as ensure_schema, mock.patch.object(
        JobStore, "due", side_effect=[missing, NotificationJob.objects.none(), missing]
    ):
        assert store.fetch_due(5) == []
        ensure_schema.assert_called_once_with()

        with pytest.raises(OperationalError):
            store.fetch_due(5)
        ensure_schema.assert_called_once_with()


@pytest.mark.django_db
def test_fetch_due_propagates_other_database_errors(store):
    with mock.patch.object(JobStore, "due", side_effect=OperationalError("database is locked")):
        with pytest.raises(OperationalError):
            store.fetch_due(5)
