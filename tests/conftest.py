"""Shared fixtures for event_pinner tests."""

from __future__ import annotations

import pytest

from event_pinner.decoding.decoder import EventDecoder
from event_pinner.models.config import DaemonConfig, EventTypeConfig, PinningConfig
from event_pinner.pinning.driver import PinDriver
from event_pinner.reconcile.cycle import ReconcileCycle, ResolvedEventType
from event_pinner.storage.sqlite import SQLiteStateStore

from tests.factories import (
    CONTRACT_ADDRESS,
    HASH_UPDATED,
    HASH_UPDATED_TYPE,
    PROFILE_UPDATED,
    PROFILE_UPDATED_TYPE,
)
from tests.mocks import MockContentStore, MockHistorySource


def make_test_config(**overrides) -> DaemonConfig:
    """Build a DaemonConfig suitable for testing."""
    defaults = dict(
        schedule="*/5 * * * *",
        cycle_timeout=10.0,
        shutdown_grace=1.0,
        contract_address=CONTRACT_ADDRESS,
        kubo_rpc_url="http://127.0.0.1:5001",
        request_timeout=5.0,
        db_path=":memory:",
        pinning=PinningConfig(max_attempts=3, base_delay=0.0, max_delay=0.0, max_concurrent=4),
        events=[
            EventTypeConfig("HashUpdated", "newHash", "oldHash"),
            EventTypeConfig("ProfileUpdated", "current", "previous", schedule="0 * * * *"),
        ],
    )
    defaults.update(overrides)
    return DaemonConfig(**defaults)


def make_event_type(definition=HASH_UPDATED, config=HASH_UPDATED_TYPE, schedule="*/5 * * * *"):
    return ResolvedEventType(
        config=config,
        definition=definition,
        address=CONTRACT_ADDRESS,
        schedule=schedule,
        decoder=EventDecoder.for_event_type(definition, config),
    )


@pytest.fixture
def test_config():
    """Default DaemonConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteStateStore."""
    s = SQLiteStateStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def content_store():
    return MockContentStore()


@pytest.fixture
def history():
    return MockHistorySource()


@pytest.fixture
def driver(content_store, store):
    return PinDriver(content_store, store, max_attempts=3, base_delay=0.0, max_delay=0.0)


@pytest.fixture
def hash_type():
    return make_event_type()


@pytest.fixture
def profile_type():
    return make_event_type(PROFILE_UPDATED, PROFILE_UPDATED_TYPE)


@pytest.fixture
def cycle(history, store, driver):
    """ReconcileCycle reading from the in-memory history, writing to SQLite."""
    return ReconcileCycle(history, store, driver, reports=store)
