"""Shared test fixtures for push notification tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- A freshly generated VAPID key pair
- Fake browser platform, worker scope and push transport

Usage:
    def test_something(store):
        # store writes to a temp database removed after the test
        ...
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from famnotify.models import SigningKeyPair
from famnotify.push.subscription_store import SubscriptionStore
from famnotify.push.vapid import generate_vapid_keys
from tests.fakes import FakePlatform, FakeTransport, FakeWorkerScope


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    The database file is automatically deleted after the test completes.

    Yields:
        Path to the temporary database file
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup
    if db_path.exists():
        os.unlink(db_path)


@pytest.fixture
def store(temp_db: Path) -> SubscriptionStore:
    """Subscription store backed by the temporary database."""
    return SubscriptionStore(temp_db)


# ─────────────────────────────────────────────────────────────────────────────
# Key Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def vapid_keys() -> dict:
    """A real VAPID key pair, generated once per test session."""
    return generate_vapid_keys()


@pytest.fixture
def signing_keys(vapid_keys: dict) -> SigningKeyPair:
    return SigningKeyPair(
        public_key=vapid_keys["public_key"],
        private_key=vapid_keys["private_key"],
        subject="mailto:tests@example.com",
    )


@pytest.fixture
def vapid_env(monkeypatch, vapid_keys: dict) -> dict:
    """Expose the VAPID key pair through the environment."""
    monkeypatch.setenv("VAPID_PUBLIC_KEY", vapid_keys["public_key"])
    monkeypatch.setenv("VAPID_PRIVATE_KEY", vapid_keys["private_key"])
    monkeypatch.setenv("VAPID_SUBJECT", "mailto:tests@example.com")
    return vapid_keys


# ─────────────────────────────────────────────────────────────────────────────
# Recipient Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_recipient_id() -> str:
    """Standard test recipient ID."""
    return "family_member_123"


# ─────────────────────────────────────────────────────────────────────────────
# Platform Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def platform() -> FakePlatform:
    """Browser with push support and permission already granted."""
    return FakePlatform()


@pytest.fixture
def worker_scope() -> FakeWorkerScope:
    return FakeWorkerScope()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()

