"""Dispatcher behaviour: fan-out, aggregation, isolation and template shortcuts."""

from __future__ import annotations

from decimal import Decimal
from unittest import mock

from django.test import TestCase

from apps.notifications.channels import Channel
from apps.notifications.conf import NotificationSettings
from apps.notifications.dispatcher import PICKUP_REMINDER
from apps.notifications.models import Notification, NotificationJob
from apps.notifications.poller import NotificationPoller
from apps.notifications.services import (
    enqueue_notification,
    notify_deposit_refund_processed,
    notify_owner_account_approved,
    schedule_pickup_reminder,
)
from apps.notifications.store import JobStore
from apps.notifications.tests.helpers import (
    FakeProvider,
    RecordingSender,
    create_booking,
    create_user,
    make_dispatcher,
)


class GenericFanOutTests(TestCase):
    def setUp(self) -> None:
        self.store = JobStore()

    def _job(self, **fields) -> NotificationJob:
        fields.setdefault("subject", "Hi")
        fields.setdefault("message", "Body")
        fields.setdefault("send_immediately", True)
        return self.store.create(**fields)

    def test_email_fallback_end_to_end(self) -> None:
        provider_a = FakeProvider("a", fail=True)
        provider_b = FakeProvider("b")
        dispatcher = make_dispatcher(providers=[provider_a, provider_b], store=self.store)
        poller = NotificationPoller(self.store, dispatcher, interval=1, batch_size=50)

        job_id = enqueue_notification(
            ["email"], email="a@example.com", subject="Hi", message="Body", store=self.store
        )
        poller.tick()

        job = NotificationJob.objects.get(pk=job_id)
        self.assertEqual(job.status, NotificationJob.Status.SENT)
        self.assertEqual(job.attempts, 1)
        self.assertIsNotNone(job.last_attempt_at)
        self.assertEqual(len(provider_b.sent), 1)
        self.assertEqual(provider_b.sent[0].to, "a@example.com")
        self.assertEqual(provider_b.sent[0].subject, "Hi")
        self.assertEqual(provider_a.sent, [])

    def test_any_channel_success_marks_job_sent(self) -> None:
        whatsapp = RecordingSender()
        dispatcher = make_dispatcher(providers=[FakeProvider("a", fail=True)], whatsapp=whatsapp)
        job = self._job(channels=["email", "whatsapp"], target_email="a@example.com", target_phone="0241234567")

        self.assertTrue(dispatcher.process(job))

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.SENT)
        self.assertEqual(whatsapp.sent, [("0241234567", "Hi", "Body")])

    def test_unknown_channel_only_fails_job(self) -> None:
        dispatcher = make_dispatcher()
        job = self._job(channels=["unknown"], target_email="a@example.com")

        self.assertFalse(dispatcher.process(job))

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.FAILED)
        self.assertEqual(job.attempts, 1)
        self.assertIn("no supported channels", job.error_message)

    def test_empty_channels_fail_job(self) -> None:
        dispatcher = make_dispatcher()
        job = self._job(channels=[], target_email="a@example.com")

        dispatcher.process(job)

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.FAILED)

    def test_attempts_increase_by_one_per_pass(self) -> None:
        dispatcher = make_dispatcher(providers=[FakeProvider("a", fail=True)])
        job = self._job(channels=["email"], target_email="a@example.com")

        dispatcher.process(job)
        job.refresh_from_db()
        self.assertEqual(job.attempts, 1)

        dispatcher.process(job)
        job.refresh_from_db()
        self.assertEqual(job.attempts, 2)
        self.assertEqual(job.status, NotificationJob.Status.FAILED)

    def test_email_chain_failure_does_not_affect_other_channels(self) -> None:
        user = create_user()
        dispatcher = make_dispatcher(providers=[FakeProvider("a", fail=True), FakeProvider("b", fail=True)])
        job = self._job(channels=["email", "inapp"], target_user=user)

        dispatcher.process(job)

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.SENT)
        notification = Notification.objects.get(user=user)
        self.assertEqual(notification.title, "Hi")
        self.assertEqual(notification.message, "Body")
        self.assertIn("email failed", job.error_message)

    def test_user_phone_takes_precedence_over_job_phone(self) -> None:
        user = create_user(phone="+233241111111")
        whatsapp = RecordingSender()
        dispatcher = make_dispatcher(whatsapp=whatsapp)
        job = self._job(channels=["whatsapp"], target_user=user, target_phone="+233249999999")

        dispatcher.process(job)

        self.assertEqual(whatsapp.sent[0][0], "+233241111111")

    def test_channels_are_case_insensitive(self) -> None:
        provider = FakeProvider("smtp")
        dispatcher = make_dispatcher(providers=[provider])
        job = self._job(channels=["EMAIL"], target_email="a@example.com")

        self.assertTrue(dispatcher.process(job))
        self.assertEqual(len(provider.sent), 1)

    def test_inapp_without_user_is_skipped(self) -> None:
        dispatcher = make_dispatcher()
        job = self._job(channels=["inapp"], target_email="a@example.com")

        dispatcher.process(job)

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.FAILED)
        self.assertIn("no recipient resolved", job.error_message)
        self.assertFalse(Notification.objects.exists())

    def test_sms_stub_needs_phone(self) -> None:
        dispatcher = make_dispatcher()
        with_phone = self._job(channels=["sms"], target_phone="+233241234567")
        without_phone = self._job(channels=["sms"], target_email="a@example.com")

        dispatcher.process(with_phone)
        dispatcher.process(without_phone)

        with_phone.refresh_from_db()
        without_phone.refresh_from_db()
        self.assertEqual(with_phone.status, NotificationJob.Status.SENT)
        self.assertEqual(without_phone.status, NotificationJob.Status.FAILED)

    def test_push_stub_always_succeeds(self) -> None:
        dispatcher = make_dispatcher()
        job = self._job(channels=["push"])

        self.assertTrue(dispatcher.process(job))

    def test_disabled_channel_is_skipped(self) -> None:
        provider = FakeProvider("smtp")
        whatsapp = RecordingSender()
        config = NotificationSettings(events={"promo": {"email": False}})
        dispatcher = make_dispatcher(providers=[provider], whatsapp=whatsapp, config=config)
        job = self._job(
            channels=["email", "whatsapp"],
            target_email="a@example.com",
            target_phone="+233241234567",
            metadata={"event": "promo"},
        )

        self.assertTrue(dispatcher.process(job))

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.SENT)
        self.assertEqual(job.error_message, "")
        self.assertEqual(provider.sent, [])
        self.assertEqual(len(whatsapp.sent), 1)

    def test_all_channels_disabled_fails_without_sending(self) -> None:
        provider = FakeProvider("smtp")
        config = NotificationSettings(events={"promo": {"email": False}})
        dispatcher = make_dispatcher(providers=[provider], config=config)
        job = self._job(channels=["email"], target_email="a@example.com", metadata={"event": "promo"})

        self.assertFalse(dispatcher.process(job))

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.FAILED)
        self.assertEqual(job.attempts, 1)
        self.assertEqual(provider.calls, 0)

    def test_unexpected_error_marks_job_failed(self) -> None:
        dispatcher = make_dispatcher()
        job = self._job(channels=["email"], target_email="a@example.com")

        with mock.patch.object(dispatcher.resolver, "load", side_effect=RuntimeError("db exploded")):
            self.assertFalse(dispatcher.process(job))

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.FAILED)
        self.assertEqual(job.attempts, 1)
        self.assertIn("RuntimeError", job.error_message)


class TemplateShortcutTests(TestCase):
    def setUp(self) -> None:
        self.store = JobStore()
        self.renter = create_user(first_name="Ama", last_name="Mensah")
        self.booking = create_booking(renter=self.renter)

    def test_owner_account_approved_renders_template(self) -> None:
        owner = create_user(email="owner@example.com", phone=None, first_name="Kofi", role="owner")
        provider = FakeProvider("smtp")
        config = NotificationSettings(login_url="https://portal.example.com/login")
        dispatcher = make_dispatcher(providers=[provider], config=config)

        job_id = notify_owner_account_approved(owner)
        job = NotificationJob.objects.get(pk=job_id)
        self.assertTrue(dispatcher.process(job))

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.SENT)
        self.assertEqual(job.attempts, 1)
        message = provider.sent[0]
        self.assertEqual(message.to, "owner@example.com")
        self.assertIn("approved", message.subject)
        self.assertIn("Hello Kofi", message.body)
        self.assertIn("https://portal.example.com/login", message.body)

    def test_shortcut_ignores_job_channels(self) -> None:
        owner = create_user(email="owner@example.com", phone=None, role="owner")
        dispatcher = make_dispatcher()
        job = self.store.create(
            channels=["inapp", "email"],
            target_user=owner,
            target_email=owner.email,
            template_name="owner_account_approved",
            send_immediately=True,
        )

        dispatcher.process(job)

        self.assertFalse(Notification.objects.exists())

    def test_pickup_reminder_sends_email_and_whatsapp(self) -> None:
        provider = FakeProvider("smtp")
        whatsapp = RecordingSender()
        dispatcher = make_dispatcher(providers=[provider], whatsapp=whatsapp)
        job = NotificationJob.objects.get(pk=schedule_pickup_reminder(self.booking, at=None))

        self.assertTrue(dispatcher.process(job))

        self.assertEqual(provider.sent[0].to, "renter@example.com")
        self.assertIn(self.booking.booking_reference, provider.sent[0].subject)
        self.assertIn("Ama Mensah", provider.sent[0].body)
        phone, _, text = whatsapp.sent[0]
        self.assertEqual(phone, "+233241111111")
        self.assertIn("PICKUP REMINDER", text)
        self.assertIn("Toyota Corolla", text)

    def test_pickup_reminder_respects_disabled_email(self) -> None:
        provider = FakeProvider("smtp")
        whatsapp = RecordingSender()
        config = NotificationSettings(events={PICKUP_REMINDER: {"email": False}})
        dispatcher = make_dispatcher(providers=[provider], whatsapp=whatsapp, config=config)
        job = NotificationJob.objects.get(pk=schedule_pickup_reminder(self.booking))

        with mock.patch.object(dispatcher, "_channel_allowed", wraps=dispatcher._channel_allowed) as allowed:
            self.assertTrue(dispatcher.process(job))

        allowed.assert_any_call(PICKUP_REMINDER, Channel.EMAIL, mock.ANY)
        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.SENT)
        self.assertEqual(provider.calls, 0)
        self.assertEqual(len(whatsapp.sent), 1)
        self.assertIn("PICKUP REMINDER", whatsapp.sent[0][2])

    def test_reminder_without_booking_falls_back_to_channels(self) -> None:
        provider = FakeProvider("smtp")
        dispatcher = make_dispatcher(providers=[provider])
        job = self.store.create(
            channels=["email"],
            target_email="guest@example.com",
            subject="Pickup tomorrow",
            message="See you",
            template_name="pickup_reminder",
            metadata={},
            send_immediately=True,
        )

        self.assertTrue(dispatcher.process(job))
        self.assertEqual(provider.sent[0].subject, "Pickup tomorrow")

    def test_failed_shortcut_falls_through_to_channels(self) -> None:
        provider = FakeProvider("smtp")
        whatsapp = RecordingSender(fail=True)
        dispatcher = make_dispatcher(providers=[provider], whatsapp=whatsapp)
        job = NotificationJob.objects.get(pk=schedule_pickup_reminder(self.booking))

        with mock.patch.object(dispatcher.renderer, "render", side_effect=RuntimeError("template broken")):
            self.assertTrue(dispatcher.process(job))

        job.refresh_from_db()
        self.assertEqual(job.status, NotificationJob.Status.SENT)
        self.assertEqual(job.attempts, 1)
        # generic path sends the plain subject/message
        self.assertIn("Pickup reminder", provider.sent[0].subject)

    def test_deposit_refund_uses_metadata_amount(self) -> None:
        provider = FakeProvider("smtp")
        whatsapp = RecordingSender()
        dispatcher = make_dispatcher(providers=[provider], whatsapp=whatsapp)
        job = NotificationJob.objects.get(
            pk=notify_deposit_refund_processed(self.booking, Decimal("125.5"), currency="USD")
        )

        dispatcher.process(job)

        self.assertIn("USD 125.50", provider.sent[0].body)
        self.assertIn("USD 125.50", whatsapp.sent[0][2])

    def test_guest_booking_uses_guest_contacts(self) -> None:
        guest_booking = create_booking(guest_name="Yaw", guest_email="yaw@example.com", guest_phone="0207654321")
        provider = FakeProvider("smtp")
        whatsapp = RecordingSender()
        dispatcher = make_dispatcher(providers=[provider], whatsapp=whatsapp)
        job = NotificationJob.objects.get(pk=schedule_pickup_reminder(guest_booking))

        dispatcher.process(job)

        self.assertEqual(provider.sent[0].to, "yaw@example.com")
        self.assertEqual(whatsapp.sent[0][0], "0207654321")
