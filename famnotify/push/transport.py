"""
Tool: Web Push Transport
Purpose: Encrypt and post one payload to one push endpoint via pywebpush

Usage:
    from famnotify.push.transport import WebPushTransport

    transport = WebPushTransport(timeout=10.0)
    status = await transport.send(subscription_info, json.dumps(data), keys, ttl=86400)

Payload encryption (aes128gcm) and VAPID signing are delegated to pywebpush.
Failures surface as pywebpush.WebPushException (with the push service
response when one was received) or as requests exceptions.

Dependencies:
    pip install pywebpush
"""

import asyncio
from typing import Any, Protocol

from pywebpush import webpush

from famnotify.models import SigningKeyPair


class PushTransport(Protocol):
    """Delivery contract for one encrypted push message."""

    async def send(
        self,
        subscription_info: dict[str, Any],
        data: str,
        signing_keys: SigningKeyPair,
        ttl: int = 0,
    ) -> int:
        """Deliver and return the push service status code."""


class WebPushTransport:
    """pywebpush backed transport. The blocking HTTP call runs in a worker thread."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    async def send(
        self,
        subscription_info: dict[str, Any],
        data: str,
        signing_keys: SigningKeyPair,
        ttl: int = 0,
    ) -> int:
        response = await asyncio.to_thread(
            webpush,
            subscription_info=subscription_info,
            data=data,
            vapid_private_key=signing_keys.private_key,
            vapid_claims={"sub": signing_keys.subject},
            ttl=ttl,
            timeout=self.timeout,
        )
        return getattr(response, "status_code", 201)
