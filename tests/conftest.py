"""Shared test fixtures."""
from datetime import date, timedelta

import pytest

from medichannel import config
from medichannel.data_access import DataAccess
from medichannel.mock_store import MockStore


def next_weekday(days_ahead=1):
    """First Monday-Friday date at least ``days_ahead`` days from today."""
    day = date.today() + timedelta(days=days_ahead)
    while day.weekday() in config.WEEKEND_DAYS:
        day += timedelta(days=1)
    return day


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Lowest bcrypt cost keeps seeding and signup fast."""
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def store():
    """Fresh seeded in-memory store."""
    return MockStore(seed=True)


@pytest.fixture
def data_access(store):
    return DataAccess(store)


@pytest.fixture
def booking_date():
    return next_weekday(3)


@pytest.fixture
def john(data_access):
    return data_access.get_user_by_email("john@email.com")


@pytest.fixture
def perera(data_access):
    return data_access.get_user_by_email("dr.perera@hospital.lk")


@pytest.fixture
def fernando(data_access):
    return data_access.get_user_by_email("dr.fernando@hospital.lk")


@pytest.fixture
def admin(data_access):
    return data_access.get_user_by_email("admin@hospital.lk")
