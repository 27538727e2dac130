"""
Tool: Subscription Status Tracker
Purpose: Derive the subscribed state of one or many recipients for a UI toggle

A recipient counts as subscribed on this device only when the store holds a
row for (recipient, this device's endpoint) AND the browser subscription is
still live. State is re-derived after every individual operation so a bulk
run shows partial progress.

Usage:
    tracker = SubscriptionStatusTracker(manager, recipient_ids=["u1", "u2"])
    tracker.add_listener(lambda t: render(t.state, t.last_error_message))
    await tracker.refresh()
    await tracker.subscribe_all()
"""

from typing import Callable

from famnotify.client.registration import RegistrationManager, SubscriptionBackend
from famnotify.errors import FailureReason
from famnotify.logging_config import get_logger
from famnotify.models import OperationResult, SubscriptionState

logger = get_logger(__name__)

# Actionable messages shown when an operation fails
USER_MESSAGES: dict[FailureReason, str] = {
    FailureReason.UNSUPPORTED_PLATFORM: "Your browser doesn't support push notifications.",
    FailureReason.PERMISSION_DENIED: "Notifications are blocked. Allow them in your browser settings and try again.",
    FailureReason.REGISTRATION_FAILURE: "Couldn't start the notification service. Reload the page and try again.",
    FailureReason.KEY_FETCH_FAILURE: "Notifications aren't available right now. Please try again later.",
    FailureReason.MALFORMED_KEY: "Notifications aren't available right now. Please try again later.",
    FailureReason.SUBSCRIBE_FAILURE: "Failed to enable notifications. Please try again.",
    FailureReason.PERSIST_FAILURE: "Couldn't save your notification settings. Please try again.",
}
DEFAULT_USER_MESSAGE = "There was a problem managing your notification settings."


class SubscriptionStatusTracker:
    """Observable subscribed state for a toggle controlling 1..N recipients."""

    def __init__(
        self,
        manager: RegistrationManager,
        recipient_ids: list[str],
        store: SubscriptionBackend | None = None,
    ):
        self.manager = manager
        self.store = store or manager.store
        self.recipient_ids = list(dict.fromkeys(recipient_ids))
        self.statuses: dict[str, bool] = {r: False for r in self.recipient_ids}
        self.last_results: dict[str, OperationResult] = {}
        self.last_error: OperationResult | None = None
        self._listeners: list[Callable[["SubscriptionStatusTracker"], None]] = []

    # ─────────────────────────────────────────────────────────────────────
    # Derived state
    # ─────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> SubscriptionState:
        subscribed = sum(1 for r in self.recipient_ids if self.statuses.get(r))
        if self.recipient_ids and subscribed == len(self.recipient_ids):
            return SubscriptionState.ALL_SUBSCRIBED
        if subscribed:
            return SubscriptionState.SOME_SUBSCRIBED
        return SubscriptionState.NONE_SUBSCRIBED

    @property
    def last_error_message(self) -> str | None:
        if self.last_error is None:
            return None
        return USER_MESSAGES.get(self.last_error.reason, DEFAULT_USER_MESSAGE)

    def add_listener(self, listener: Callable[["SubscriptionStatusTracker"], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    async def check_status(self, recipient_id: str) -> bool:
        """True if the store has this device's row AND the browser subscription is live."""
        try:
            endpoint = await self.manager.live_endpoint()
            if endpoint is None:
                return False
            return await self.store.exists_for(recipient_id, endpoint)
        except Exception as e:
            logger.warning("push_status_check_failed", recipient_id=recipient_id, error=str(e))
            return False

    async def refresh(self) -> SubscriptionState:
        """Re-derive every recipient's status."""
        for recipient_id in self.recipient_ids:
            self.statuses[recipient_id] = await self.check_status(recipient_id)
        self._notify()
        return self.state

    # ─────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────

    def _record(self, recipient_id: str, result: OperationResult) -> None:
        self.last_results[recipient_id] = result
        self.last_error = None if result.success else result

    async def subscribe(self, recipient_id: str) -> bool:
        result = await self.manager.subscribe(recipient_id)
        self._record(recipient_id, result)
        # Replacing or tearing down the device subscription affects every target
        await self.refresh()
        return result.success

    async def unsubscribe(self, recipient_id: str) -> bool:
        result = await self.manager.unsubscribe(recipient_id)
        self._record(recipient_id, result)
        await self.refresh()
        return result.success

    async def subscribe_all(self) -> dict[str, OperationResult]:
        """Subscribe each target independently. Failures do not stop the rest."""
        results: dict[str, OperationResult] = {}
        failures: list[OperationResult] = []
        for recipient_id in self.recipient_ids:
            await self.subscribe(recipient_id)
            results[recipient_id] = self.last_results[recipient_id]
            if not results[recipient_id].success:
                failures.append(results[recipient_id])

        self.last_error = failures[-1] if failures else None
        self._notify()
        return results

    async def unsubscribe_all(self) -> dict[str, OperationResult]:
        results: dict[str, OperationResult] = {}
        failures: list[OperationResult] = []
        for recipient_id in self.recipient_ids:
            await self.unsubscribe(recipient_id)
            results[recipient_id] = self.last_results[recipient_id]
            if not results[recipient_id].success:
                failures.append(results[recipient_id])

        self.last_error = failures[-1] if failures else None
        self._notify()
        return results

    async def toggle(self) -> dict[str, OperationResult]:
        """Subscribe everyone unless all targets are already subscribed."""
        if self.state == SubscriptionState.ALL_SUBSCRIBED:
            return await self.unsubscribe_all()
        return await self.subscribe_all()
