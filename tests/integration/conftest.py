"""
Integration test fixtures for the push API.

Provides fixtures specific to integration testing:
- A FastAPI app wired to a temporary subscription store
- Fake push transport and signing keys injected through dependency overrides
- Sync (TestClient) and async (httpx ASGITransport) clients
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from famnotify.api.main import create_app
from famnotify.api.routes import get_key_loader, get_store, get_transport
from famnotify.models import SigningKeyPair
from famnotify.push.subscription_store import SubscriptionStore
from tests.fakes import FakeTransport


# ─────────────────────────────────────────────────────────────────────────────
# App Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def push_transport() -> FakeTransport:
    """Push service stand-in; tests set `statuses` before sending."""
    return FakeTransport()


@pytest.fixture
def app(store: SubscriptionStore, push_transport: FakeTransport, signing_keys: SigningKeyPair) -> Generator[FastAPI, None, None]:
    """Push API app backed by the temporary store."""
    application = create_app()
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_transport] = lambda: push_transport
    application.dependency_overrides[get_key_loader] = lambda: (lambda: signing_keys)

    yield application

    application.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Synchronous test client. Lifespan is not run, so no data/ files are created."""
    return TestClient(app)
