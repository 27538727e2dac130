"""
Tool: Worker Events and Scope
Purpose: Event objects and host capabilities seen by the background worker

The host runtime (or a test) builds these events and hands them to
NotificationWorker. Work registered with wait_until keeps the worker alive
until it settles; `settled()` is how the host waits for that.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol


class WindowClient(Protocol):
    """An open application window controlled by the worker."""

    url: str

    async def focus(self) -> "WindowClient": ...


class WorkerScope(Protocol):
    """Global scope of the background worker."""

    async def skip_waiting(self) -> None: ...

    async def claim_clients(self) -> None: ...

    async def show_notification(self, title: str, options: dict[str, Any]) -> None: ...

    async def match_windows(self) -> list[WindowClient]: ...

    async def open_window(self, url: str) -> WindowClient | None: ...

    async def cache_keys(self) -> list[str]: ...

    async def cache_delete(self, name: str) -> bool: ...

    async def cache_add_all(self, name: str, urls: list[str]) -> None: ...


class ExtendableEvent:
    """Event whose lifetime can be extended with wait_until."""

    def __init__(self) -> None:
        self._pending: list[asyncio.Future] = []

    def wait_until(self, awaitable: Awaitable[Any]) -> None:
        """Keep the worker alive until the awaitable settles."""
        self._pending.append(asyncio.ensure_future(awaitable))

    @property
    def extended(self) -> bool:
        return bool(self._pending)

    async def settled(self) -> list[Any]:
        """Wait for every extension; exceptions are returned, not raised."""
        return await asyncio.gather(*self._pending, return_exceptions=True)


class PushEvent(ExtendableEvent):
    def __init__(self, data: bytes | str | None = None) -> None:
        super().__init__()
        self.data = data


@dataclass
class Notification:
    """A displayed notification as delivered back on click."""

    title: str
    options: dict[str, Any] = field(default_factory=dict)
    closed: bool = False

    @property
    def data(self) -> dict[str, Any]:
        return self.options.get("data") or {}

    def close(self) -> None:
        self.closed = True


class NotificationClickEvent(ExtendableEvent):
    def __init__(self, notification: Notification, action: str = "") -> None:
        super().__init__()
        self.notification = notification
        self.action = action


class MessageEvent(ExtendableEvent):
    """Control message posted to the worker by a page."""

    def __init__(self, data: Any, reply: Callable[[dict[str, Any]], None] | None = None) -> None:
        super().__init__()
        self.data = data
        self.reply = reply
