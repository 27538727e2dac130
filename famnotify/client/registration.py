"""
Tool: Push Registration Manager
Purpose: Own the background worker and this device's push subscription

Usage:
    from famnotify.client.registration import PushSession, RegistrationManager

    session = PushSession(platform=platform, store=api_client, key_provider=api_client.get_vapid_key)
    manager = RegistrationManager(session)

    result = await manager.subscribe("u1")
    if not result.success:
        show_error(result.reason)

Design:
    - One PushSession per application session holds the cached worker
      registration and the locks; nothing is module-global.
    - subscribe/unsubscribe for the same recipient run one at a time
      (a second call waits for the first).
    - Calls for different recipients may overlap, but only one at a time
      touches the device's browser subscription (PushSession.device_lock,
      taken after the recipient lock).
    - A device holds at most one browser subscription, shared by every
      recipient opted in on that device. Replacing it moves the stored rows
      of the old endpoint onto the new one.
    - A persistence failure after a successful browser subscribe is
      reported as PERSIST_FAILURE; the browser subscription is kept.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol

from famnotify.client.platform import BrowserSubscription, PushPlatform, WorkerRegistration
from famnotify.errors import (
    KeyFetchFailure,
    PermissionDenied,
    PersistFailure,
    PushError,
    RegistrationFailure,
    SubscribeFailure,
    UnsupportedPlatform,
)
from famnotify.logging_config import get_logger
from famnotify.models import OperationResult, PermissionState
from famnotify.push.keys import decode_server_key, encode_subscription_key

logger = get_logger(__name__)

DEFAULT_WORKER_SCRIPT = "/sw.js"


class SubscriptionBackend(Protocol):
    """The subset of the subscription store the client needs."""

    async def upsert(self, recipient_id: str, endpoint: str, public_key: str, auth_secret: str) -> None: ...

    async def delete_by_recipient(self, recipient_id: str, endpoint: str | None = None) -> int: ...

    async def exists_for(self, recipient_id: str, endpoint: str | None = None) -> bool: ...

    async def count_for_endpoint(self, endpoint: str) -> int: ...

    async def rebind_endpoint(self, old_endpoint: str, new_endpoint: str, public_key: str, auth_secret: str) -> int: ...


@dataclass
class PushSession:
    """
    Client push state whose lifetime matches the application session.

    Attributes:
        platform: Browser capabilities
        store: Where subscriptions are persisted (store or API client)
        key_provider: Returns the server's base64url VAPID public key
        worker_script: URL of the background worker script
        registration: Cached worker registration, filled by ensure_worker_ready
        device_lock: Held while the shared browser subscription is read or replaced
    """

    platform: PushPlatform
    store: SubscriptionBackend
    key_provider: Callable[[], Awaitable[str]]
    worker_script: str = DEFAULT_WORKER_SCRIPT
    registration: WorkerRegistration | None = None
    device_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _recipient_locks: dict[str, asyncio.Lock] = field(default_factory=dict, repr=False)

    def lock_for(self, recipient_id: str) -> asyncio.Lock:
        """Lock serializing operations for one recipient."""
        if recipient_id not in self._recipient_locks:
            self._recipient_locks[recipient_id] = asyncio.Lock()
        return self._recipient_locks[recipient_id]

    def is_busy(self, recipient_id: str) -> bool:
        lock = self._recipient_locks.get(recipient_id)
        return lock is not None and lock.locked()


class RegistrationManager:
    """Worker registration and push subscription lifecycle for one device."""

    def __init__(self, session: PushSession):
        self.session = session

    @property
    def platform(self) -> PushPlatform:
        return self.session.platform

    @property
    def store(self) -> SubscriptionBackend:
        return self.session.store

    def current_permission_state(self) -> PermissionState:
        """Read-only probe of notification permission."""
        if not self.platform.supports_push():
            return PermissionState.DENIED
        return self.platform.permission_state()

    async def ensure_worker_ready(self) -> WorkerRegistration:
        """
        Return an active worker registration, registering the worker if needed.

        Raises:
            UnsupportedPlatform: no worker/push support
            RegistrationFailure: registration or activation failed
        """
        if not self.platform.supports_push():
            raise UnsupportedPlatform("This browser doesn't support push notifications")

        cached = self.session.registration
        if cached is not None and cached.active:
            return cached

        try:
            registration = await self.platform.get_registration()
            if registration is None or not registration.active:
                await self.platform.register_worker(self.session.worker_script)
                registration = await self.platform.worker_ready()
        except PushError:
            raise
        except Exception as e:
            raise RegistrationFailure(f"Worker registration failed: {e}") from e

        if registration is None or not registration.active:
            raise RegistrationFailure("Worker did not become active")

        self.session.registration = registration
        return registration

    async def live_subscription(self) -> BrowserSubscription | None:
        """This device's browser subscription, without registering a worker."""
        if not self.platform.supports_push():
            return None

        registration = self.session.registration
        if registration is None:
            registration = await self.platform.get_registration()
            if registration is None:
                return None
            if registration.active:
                self.session.registration = registration

        return await registration.get_subscription()

    async def live_endpoint(self) -> str | None:
        subscription = await self.live_subscription()
        return subscription.endpoint if subscription is not None else None

    async def subscribe(self, recipient_id: str) -> OperationResult:
        """Opt a recipient in on this device."""
        async with self.session.lock_for(recipient_id):
            try:
                endpoint = await self._subscribe(recipient_id)
            except PushError as e:
                logger.warning("push_subscribe_failed", recipient_id=recipient_id, reason=e.reason.value, detail=e.message)
                return OperationResult.from_error(e)

        logger.info("push_subscribed", recipient_id=recipient_id, endpoint=endpoint)
        return OperationResult.ok(endpoint)

    async def _ensure_permission(self) -> None:
        state = self.platform.permission_state()
        if state == PermissionState.DEFAULT:
            state = await self.platform.request_permission()
        if state != PermissionState.GRANTED:
            raise PermissionDenied("Notification permission was not granted")

    async def _fetch_public_key(self) -> str:
        try:
            public_key = await self.session.key_provider()
        except PushError:
            raise
        except Exception as e:
            raise KeyFetchFailure(f"Could not fetch VAPID public key: {e}") from e

        if not public_key:
            raise KeyFetchFailure("VAPID public key not available")
        return public_key

    async def _subscribe(self, recipient_id: str) -> str:
        if not self.platform.supports_push():
            raise UnsupportedPlatform("This browser doesn't support push notifications")

        await self._ensure_permission()

        # The browser subscription is shared by every recipient on the device
        async with self.session.device_lock:
            registration = await self.ensure_worker_ready()
            server_key = decode_server_key(await self._fetch_public_key())
            return await self._replace_device_subscription(recipient_id, registration, server_key)

    async def _replace_device_subscription(
        self,
        recipient_id: str,
        registration: WorkerRegistration,
        server_key: bytes,
    ) -> str:
        old_endpoint = None
        try:
            existing = await registration.get_subscription()
            if existing is not None:
                old_endpoint = existing.endpoint
                await existing.unsubscribe()

            subscription = await registration.subscribe(server_key)
            p256dh = encode_subscription_key(subscription.get_key("p256dh"))
            auth = encode_subscription_key(subscription.get_key("auth"))
        except PushError:
            raise
        except Exception as e:
            raise SubscribeFailure(f"Push subscribe failed: {e}") from e

        try:
            if old_endpoint is not None and old_endpoint != subscription.endpoint:
                await self.store.rebind_endpoint(old_endpoint, subscription.endpoint, p256dh, auth)
            await self.store.upsert(recipient_id, subscription.endpoint, p256dh, auth)
        except PersistFailure:
            raise
        except Exception as e:
            raise PersistFailure(f"Failed to save subscription: {e}") from e

        return subscription.endpoint

    async def unsubscribe(self, recipient_id: str) -> OperationResult:
        """
        Opt a recipient out on this device.

        The browser subscription is torn down only once no recipient on this
        device still uses it.
        """
        async with self.session.lock_for(recipient_id):
            try:
                endpoint = await self._unsubscribe(recipient_id)
            except PushError as e:
                logger.warning("push_unsubscribe_failed", recipient_id=recipient_id, reason=e.reason.value, detail=e.message)
                return OperationResult.from_error(e)

        logger.info("push_unsubscribed", recipient_id=recipient_id, endpoint=endpoint)
        return OperationResult.ok(endpoint)

    async def _unsubscribe(self, recipient_id: str) -> str | None:
        if not self.platform.supports_push():
            raise UnsupportedPlatform("This browser doesn't support push notifications")

        async with self.session.device_lock:
            return await self._release_device_subscription(recipient_id)

    async def _release_device_subscription(self, recipient_id: str) -> str | None:
        try:
            live = await self.live_subscription()
        except Exception as e:
            raise RegistrationFailure(f"Could not read worker registration: {e}") from e

        if live is None:
            return None

        try:
            await self.store.delete_by_recipient(recipient_id, live.endpoint)
            remaining = await self.store.count_for_endpoint(live.endpoint)
        except PersistFailure:
            raise
        except Exception as e:
            raise PersistFailure(f"Failed to remove subscription: {e}") from e

        if remaining == 0:
            try:
                await live.unsubscribe()
            except Exception as e:
                raise SubscribeFailure(f"Failed to remove browser subscription: {e}") from e

        return live.endpoint
