"""
Tool: Push API Client
Purpose: Reach the subscription store and VAPID key through the HTTP API

Implements the SubscriptionBackend surface used by the registration manager
and status tracker, so the client never touches the database directly.

Usage:
    async with PushApiClient("https://reminders.example.com") as api:
        session = PushSession(platform=platform, store=api, key_provider=api.get_vapid_key)

Every request is bounded by a timeout; a timed-out or failed request raises
PersistFailure (store calls) or KeyFetchFailure (key fetch).

Dependencies:
    pip install httpx
"""

import httpx

from famnotify.errors import KeyFetchFailure, PersistFailure

API_PREFIX = "/api/push"
DEFAULT_TIMEOUT_SECONDS = 5.0


class PushApiClient:
    """Async HTTP client for the push API routes."""

    def __init__(
        self,
        base_url: str = "",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers)

    async def __aenter__(self) -> "PushApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self._client.request(method, f"{API_PREFIX}{path}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PersistFailure(f"Push API request failed: {e}") from e
        return response.json()

    async def get_vapid_key(self) -> str:
        try:
            response = await self._client.get(f"{API_PREFIX}/vapid-key")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise KeyFetchFailure(f"Could not fetch VAPID public key: {e}") from e
        return response.json().get("public_key", "")

    async def upsert(self, recipient_id: str, endpoint: str, public_key: str, auth_secret: str) -> None:
        await self._request(
            "POST",
            "/subscriptions",
            json={
                "recipient_id": recipient_id,
                "endpoint": endpoint,
                "p256dh": public_key,
                "auth": auth_secret,
            },
        )

    async def delete_by_recipient(self, recipient_id: str, endpoint: str | None = None) -> int:
        params = {"recipient_id": recipient_id}
        if endpoint is not None:
            params["endpoint"] = endpoint
        data = await self._request("DELETE", "/subscriptions", params=params)
        return int(data.get("deleted", 0))

    async def exists_for(self, recipient_id: str, endpoint: str | None = None) -> bool:
        params = {"recipient_id": recipient_id}
        if endpoint is not None:
            params["endpoint"] = endpoint
        data = await self._request("GET", "/subscriptions/status", params=params)
        return bool(data.get("subscribed"))

    async def count_for_endpoint(self, endpoint: str) -> int:
        data = await self._request("GET", "/subscriptions/endpoint-usage", params={"endpoint": endpoint})
        return int(data.get("count", 0))

    async def rebind_endpoint(self, old_endpoint: str, new_endpoint: str, public_key: str, auth_secret: str) -> int:
        data = await self._request(
            "POST",
            "/subscriptions/rebind",
            json={
                "old_endpoint": old_endpoint,
                "new_endpoint": new_endpoint,
                "p256dh": public_key,
                "auth": auth_secret,
            },
        )
        return int(data.get("moved", 0))
