"""Tier 2 fixtures: real Kubo daemon on localhost."""

from __future__ import annotations

import os

import httpx
import pytest

from event_pinner.ipfs.content_store import KuboContentStore
from tests.conftest import make_test_config


@pytest.fixture(scope="session")
def kubo_available():
    """Check if local Kubo daemon is running. Skip tier2 tests if not."""
    try:
        r = httpx.post("http://127.0.0.1:5001/api/v0/id", timeout=3)
        if r.status_code == 200:
            return True
        pytest.skip("Kubo daemon not available at localhost:5001")
    except (httpx.ConnectError, httpx.TimeoutException):
        pytest.skip("Kubo daemon not available at localhost:5001")


@pytest.fixture
def real_content_store(kubo_available):
    """Real KuboContentStore for Tier 2 tests."""
    cfg = make_test_config()
    return KuboContentStore(cfg.kubo_rpc_url, request_timeout=cfg.request_timeout)


@pytest.fixture
async def added_content(real_content_store):
    """Add unique content without pinning it. Returns the multihash.

    The pin is removed again on teardown.
    """
    multihash = await real_content_store.add(b"event-pinner-tier2-" + os.urandom(8))
    yield multihash
    await real_content_store.unpin(multihash)
