import pytest

from apps.notifications.store import JobStore
from apps.notifications.tests.helpers import create_booking, create_user


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def renter(db):
    return create_user()


@pytest.fixture
def booking(renter):
    return create_booking(renter=renter)
