"""
Integration tests for the push API.

Tests the HTTP surface end to end against a temporary store:
- Subscription management routes
- Dispatch with per-endpoint outcomes and pruning of gone endpoints
- The client registration flow going through PushApiClient
"""

import httpx
import pytest

from famnotify.api.routes import get_key_loader
from famnotify.client.api_client import PushApiClient
from famnotify.client.reconciliation import SubscriptionStatusTracker
from famnotify.client.registration import PushSession, RegistrationManager
from famnotify.errors import KeyFetchFailure, PersistFailure
from famnotify.models import SubscriptionState
from famnotify.push.keys import encode_subscription_key
from tests.fakes import FakePlatform

pytestmark = pytest.mark.integration

EP1 = "https://push.example.com/send/device-1"
EP2 = "https://push.example.com/send/device-2"

P256DH = encode_subscription_key(b"\x04" + bytes(range(64)))
AUTH = encode_subscription_key(bytes(range(16)))


def _subscribe(client, recipient_id: str, endpoint: str):
    return client.post(
        "/api/push/subscriptions",
        json={"recipient_id": recipient_id, "endpoint": endpoint, "p256dh": P256DH, "auth": AUTH},
    )


class TestVapidKeyRoute:
    def test_returns_public_key(self, client, vapid_env):
        response = client.get("/api/push/vapid-key")

        assert response.status_code == 200
        assert response.json() == {"public_key": vapid_env["public_key"]}

    def test_unconfigured_is_503(self, client, monkeypatch, tmp_path):
        for name in ("VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "VAPID_SUBJECT"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("famnotify.push.vapid.CONFIG_FILE", tmp_path / "absent.yaml")

        response = client.get("/api/push/vapid-key")

        assert response.status_code == 503


class TestSubscriptionRoutes:
    def test_upsert_then_status(self, client):
        assert _subscribe(client, "u1", EP1).json() == {"success": True}

        status = client.get("/api/push/subscriptions/status", params={"recipient_id": "u1", "endpoint": EP1})

        assert status.json() == {"recipient_id": "u1", "subscribed": True}

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/push/subscriptions", json={"recipient_id": "u1", "endpoint": EP1})

        assert response.status_code == 422

    def test_delete_single_device(self, client, store):
        _subscribe(client, "u1", EP1)
        _subscribe(client, "u1", EP2)

        response = client.request("DELETE", "/api/push/subscriptions", params={"recipient_id": "u1", "endpoint": EP1})

        assert response.json() == {"success": True, "deleted": 1}

    def test_endpoint_usage_and_rebind(self, client):
        _subscribe(client, "mom", EP1)
        _subscribe(client, "dad", EP1)

        assert client.get("/api/push/subscriptions/endpoint-usage", params={"endpoint": EP1}).json() == {"count": 2}

        moved = client.post(
            "/api/push/subscriptions/rebind",
            json={"old_endpoint": EP1, "new_endpoint": EP2, "p256dh": P256DH, "auth": AUTH},
        )

        assert moved.json() == {"success": True, "moved": 2}
        assert client.get("/api/push/subscriptions/endpoint-usage", params={"endpoint": EP2}).json() == {"count": 2}


class TestSendRoute:
    def test_gone_endpoint_pruned(self, client, store, push_transport):
        _subscribe(client, "u1", EP1)
        _subscribe(client, "u1", EP2)
        push_transport.statuses[EP2] = 410

        response = client.post(
            "/api/push/send",
            json={"recipientIds": ["u1"], "title": "Reminder", "body": "Take out the bins"},
        )

        assert response.status_code == 200
        report = response.json()
        assert report["total"] == 2
        assert report["successful"] == 1
        assert report["expired"] == 1
        statuses = {r["statusCode"] for r in report["results"]}
        assert "410" in statuses

        remaining = client.get("/api/push/subscriptions/status", params={"recipient_id": "u1", "endpoint": EP2})
        assert remaining.json()["subscribed"] is False
        assert client.get("/api/push/subscriptions/endpoint-usage", params={"endpoint": EP1}).json() == {"count": 1}

    def test_no_subscriptions(self, client):
        response = client.post("/api/push/send", json={"recipientIds": ["nobody"], "title": "Hi", "body": "There"})

        assert response.json() == {"total": 0, "successful": 0, "expired": 0, "results": []}

    def test_metadata_forwarded(self, client, push_transport):
        import json

        _subscribe(client, "u1", EP1)

        client.post(
            "/api/push/send",
            json={"recipientIds": ["u1"], "title": "Hi", "body": "There", "metadata": {"url": "/reminders/3"}},
        )

        assert json.loads(push_transport.sent[0]["data"])["url"] == "/reminders/3"

    def test_missing_signing_keys_is_503(self, app, client):
        def broken_loader():
            raise KeyFetchFailure("VAPID keys not configured")

        app.dependency_overrides[get_key_loader] = lambda: broken_loader

        response = client.post("/api/push/send", json={"recipientIds": ["u1"], "title": "Hi", "body": "There"})

        assert response.status_code == 503


class TestClientThroughApi:
    @pytest.mark.asyncio
    async def test_subscribe_flow_persists_through_api(self, app, store, vapid_env):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            api = PushApiClient(client=http)
            platform = FakePlatform()
            manager = RegistrationManager(PushSession(platform=platform, store=api, key_provider=api.get_vapid_key))
            tracker = SubscriptionStatusTracker(manager, ["mom", "dad"])

            await tracker.subscribe_all()

            assert tracker.state == SubscriptionState.ALL_SUBSCRIBED
            endpoint = platform.current_subscription.endpoint
            assert await store.count_for_endpoint(endpoint) == 2

            await tracker.unsubscribe_all()

            assert tracker.state == SubscriptionState.NONE_SUBSCRIBED
            assert await store.get_stats() == {"total": 0, "recipients": 0, "devices": 0}

    @pytest.mark.asyncio
    async def test_api_errors_become_persist_failure(self, app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            api = PushApiClient(client=http)

            with pytest.raises(PersistFailure):
                await api.upsert("u1", "", P256DH, AUTH)

    @pytest.mark.asyncio
    async def test_key_fetch_failure_when_unconfigured(self, app, monkeypatch, tmp_path):
        for name in ("VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "VAPID_SUBJECT"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("famnotify.push.vapid.CONFIG_FILE", tmp_path / "absent.yaml")

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            with pytest.raises(KeyFetchFailure):
                await PushApiClient(client=http).get_vapid_key()
