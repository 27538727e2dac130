"""
Tool: Worker Notification Handler
Purpose: Show delivered pushes and route notification clicks into the app

Lifecycle:
    installing -> active: install skips the waiting phase and precaches the
    app shell; activate drops stale caches and claims open pages.
    active -> handling push -> active: every push shows a notification,
    falling back to a generic reminder when the payload is unreadable.

Usage:
    worker = NotificationWorker(scope)
    event = PushEvent(data=b'{"title": "Bins", "body": "Take out the bins"}')
    worker.on_push(event)
    await event.settled()
"""

import time
from enum import Enum
from typing import Any

from famnotify.logging_config import get_logger
from famnotify.push.vapid import load_push_config
from famnotify.worker.events import (
    ExtendableEvent,
    MessageEvent,
    NotificationClickEvent,
    PushEvent,
    WindowClient,
    WorkerScope,
)
from famnotify.worker.payload import PushPayload, parse_payload

logger = get_logger(__name__)

CACHE_NAME = "family-app-cache-v1"
PRECACHE_URLS = ["/", "/index.html", "/favicon.ico"]

ACTION_OPEN = "open"
ACTION_DISMISS = "dismiss"

MESSAGE_SKIP_WAITING = "SKIP_WAITING"
MESSAGE_CLEAR_CACHES = "CLEAR_CACHES"
MESSAGE_CACHES_CLEARED = "CACHES_CLEARED"

VIBRATE_PATTERN = [100, 50, 100]


class WorkerState(str, Enum):
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVE = "active"
    HANDLING_PUSH = "handling_push"


class NotificationWorker:
    """Event handlers of the background worker."""

    def __init__(
        self,
        scope: WorkerScope,
        cache_name: str = CACHE_NAME,
        precache_urls: list[str] | None = None,
        config: dict[str, Any] | None = None,
    ):
        self.scope = scope
        self.cache_name = cache_name
        self.precache_urls = list(precache_urls if precache_urls is not None else PRECACHE_URLS)
        self.config = config if config is not None else load_push_config()["push"]
        self._phase = WorkerState.INSTALLING
        self._pushes_in_flight = 0

    @property
    def state(self) -> WorkerState:
        if self._phase == WorkerState.ACTIVE and self._pushes_in_flight:
            return WorkerState.HANDLING_PUSH
        return self._phase

    @property
    def click_route(self) -> str:
        return self.config.get("click_route") or "/reminders"

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def on_install(self, event: ExtendableEvent) -> None:
        logger.info("worker_installing")
        self._phase = WorkerState.INSTALLING
        event.wait_until(self._install())

    async def _install(self) -> None:
        await self.scope.skip_waiting()
        await self.scope.cache_add_all(self.cache_name, self.precache_urls)
        self._phase = WorkerState.INSTALLED

    def on_activate(self, event: ExtendableEvent) -> None:
        logger.info("worker_activating")
        self._phase = WorkerState.ACTIVATING
        event.wait_until(self._activate())

    async def _activate(self) -> None:
        for name in await self.scope.cache_keys():
            if name != self.cache_name:
                await self.scope.cache_delete(name)
        await self.scope.claim_clients()
        self._phase = WorkerState.ACTIVE

    # ─────────────────────────────────────────────────────────────────────
    # Push
    # ─────────────────────────────────────────────────────────────────────

    def notification_options(self, payload: PushPayload) -> dict[str, Any]:
        return {
            "body": payload.body,
            "icon": self.config.get("icon", "/favicon.ico"),
            "badge": self.config.get("badge", "/favicon.ico"),
            "vibrate": VIBRATE_PATTERN,
            "data": {
                "dateOfArrival": int(time.time() * 1000),
                "primaryKey": 1,
                "userId": payload.userId,
                "url": payload.url or self.click_route,
            },
            "actions": [
                {"action": ACTION_OPEN, "title": "Open App"},
                {"action": ACTION_DISMISS, "title": "Dismiss"},
            ],
        }

    def on_push(self, event: PushEvent) -> None:
        """Always display a notification for a push, held open with wait_until."""
        payload = parse_payload(event.data)
        self._pushes_in_flight += 1
        event.wait_until(self._display(payload))

    async def _display(self, payload: PushPayload) -> None:
        try:
            await self.scope.show_notification(payload.title, self.notification_options(payload))
        except Exception:
            logger.exception("worker_show_notification_failed")
            raise
        finally:
            self._pushes_in_flight -= 1

    # ─────────────────────────────────────────────────────────────────────
    # Clicks
    # ─────────────────────────────────────────────────────────────────────

    def _target_route(self, data: dict[str, Any]) -> str:
        url = data.get("url")
        # In-app paths only
        if isinstance(url, str) and url.startswith("/") and not url.startswith("//"):
            return url
        return self.click_route

    def on_notification_click(self, event: NotificationClickEvent) -> None:
        event.notification.close()
        if event.action == ACTION_DISMISS:
            return
        event.wait_until(self._focus_or_open(self._target_route(event.notification.data)))

    async def _focus_or_open(self, route: str) -> WindowClient | None:
        """Focus one existing app window, or open exactly one new one."""
        windows = await self.scope.match_windows()
        if windows:
            on_route = [w for w in windows if route in w.url]
            target = on_route[0] if on_route else windows[0]
            return await target.focus()
        return await self.scope.open_window(route)

    # ─────────────────────────────────────────────────────────────────────
    # Control messages
    # ─────────────────────────────────────────────────────────────────────

    def on_message(self, event: MessageEvent) -> None:
        message_type = event.data.get("type") if isinstance(event.data, dict) else None

        if message_type == MESSAGE_SKIP_WAITING:
            event.wait_until(self.scope.skip_waiting())
        elif message_type == MESSAGE_CLEAR_CACHES:
            event.wait_until(self._clear_caches(event))
        else:
            logger.debug("worker_message_ignored", message_type=message_type)

    async def _clear_caches(self, event: MessageEvent) -> None:
        names = await self.scope.cache_keys()
        for name in names:
            await self.scope.cache_delete(name)
        logger.info("worker_caches_cleared", count=len(names))
        if event.reply is not None:
            event.reply({"type": MESSAGE_CACHES_CLEARED})
