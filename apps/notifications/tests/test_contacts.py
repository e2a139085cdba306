from __future__ import annotations

import pytest

from apps.notifications.contacts import ContactResolver
from apps.notifications.tests.helpers import create_booking, create_user


@pytest.fixture
def resolver():
    return ContactResolver()


@pytest.mark.django_db
def test_user_contact_wins(resolver, store, booking):
    user = create_user(email="direct@example.com", phone="+233200000001")
    job = store.create(channels=["email"], target_user=user, booking=booking, target_email="override@example.com")
    ctx = resolver.load(job)

    assert resolver.email(job, ctx) == "direct@example.com"
    assert resolver.phone(job, ctx) == "+233200000001"


@pytest.mark.django_db
def test_job_override_beats_booking(resolver, store, booking):
    job = store.create(channels=["email"], booking=booking, target_email="override@example.com", target_phone="0551234567")
    ctx = resolver.load(job)

    assert resolver.email(job, ctx) == "override@example.com"
    assert resolver.phone(job, ctx) == "0551234567"


@pytest.mark.django_db
def test_booking_renter_then_guest(resolver, store, booking):
    job = store.create(channels=["email"], booking=booking)
    assert resolver.email(job, resolver.load(job)) == "renter@example.com"

    guest_booking = create_booking(guest_email="guest@example.com", guest_phone="")
    guest_job = store.create(channels=["whatsapp"], booking=guest_booking)
    ctx = resolver.load(guest_job)
    assert resolver.email(guest_job, ctx) == "guest@example.com"
    assert resolver.phone(guest_job, ctx) is None


@pytest.mark.django_db
def test_blank_values_are_skipped(resolver, store):
    user = create_user(email="blank-phone@example.com", phone=None)
    job = store.create(channels=["whatsapp"], target_user=user, target_phone="  ")

    assert resolver.phone(job, resolver.load(job)) is None
