"""
Tool: Push Platform Capabilities
Purpose: The browser surface the registration manager depends on

A host bridge (or a test fake) implements these protocols; nothing in the
client package touches platform globals directly.

Usage:
    from famnotify.client.platform import PushPlatform, WorkerRegistration
"""

from typing import Protocol

from famnotify.models import PermissionState


class BrowserSubscription(Protocol):
    """A live browser-level push subscription."""

    endpoint: str

    def get_key(self, name: str) -> bytes:
        """Raw key bytes for "p256dh" or "auth"."""

    async def unsubscribe(self) -> bool:
        """Tear the subscription down at the push service."""


class WorkerRegistration(Protocol):
    """A background worker registration and its push manager."""

    @property
    def active(self) -> bool:
        """True once the worker has activated."""

    async def get_subscription(self) -> BrowserSubscription | None:
        """The device's current push subscription, if any."""

    async def subscribe(self, application_server_key: bytes) -> BrowserSubscription:
        """Create a user-visible push subscription bound to the server key."""


class PushPlatform(Protocol):
    """Permission API and worker registry."""

    def supports_push(self) -> bool:
        """True if background workers and the push manager are available."""

    def permission_state(self) -> PermissionState:
        """Current notification permission, without prompting."""

    async def request_permission(self) -> PermissionState:
        """Prompt the user for notification permission."""

    async def get_registration(self) -> WorkerRegistration | None:
        """Existing worker registration for this origin, if any."""

    async def register_worker(self, script_url: str) -> WorkerRegistration:
        """Register (or update) the worker script."""

    async def worker_ready(self) -> WorkerRegistration:
        """Resolve once a registration has an active worker."""
