"""
Shared fixtures for the Quote Tracker tests.
"""

import os

os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest

from quote_tracker.config.settings import NotificationSettings, Settings
from quote_tracker.services.quotes.identifier_service import IdentifierIssuer
from quote_tracker.tests.fakes import (
    FixedClock, InMemoryQuoteStore, RecordingSleep, RecordingTransport
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store(clock):
    return InMemoryQuoteStore(clock)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def issuer(clock):
    return IdentifierIssuer("COT", clock=clock)


@pytest.fixture
def settings():
    return Settings(
        public_base_url="https://hexagono.xyz",
        cron_secret="test-cron-secret",
        notifications=NotificationSettings(initial_retry_delay_seconds=1.0),
    )
