"""
Tool: Push Notification Dispatcher
Purpose: Fan a message out to every device of a set of recipients

Usage:
    from famnotify.push.dispatcher import dispatch
    from famnotify.models import NotificationPayload

    report = await dispatch(NotificationPayload(
        title="Reminder",
        body="Time for your reminder!",
        recipient_ids=["u1"],
    ))
    report.to_dict()  # {"total": 2, "successful": 1, "expired": 1, "results": [...]}

    # CLI
    python -m famnotify.push.dispatcher send -r u1 -t "Reminder" -b "Take out the bins"

Every subscription is delivered independently and concurrently. An endpoint
reported gone (404/410) is pruned from the store as soon as its own attempt
finishes. Other failures are reported and not retried. The only outright
failure is a signing key pair that cannot be loaded.
"""

import asyncio
import json
from http import HTTPStatus
from typing import Any, Callable

from pywebpush import WebPushException

from famnotify.errors import KeyFetchFailure, PersistFailure
from famnotify.logging_config import get_logger
from famnotify.models import (
    DeliveryOutcome,
    DeliveryResult,
    DispatchReport,
    NotificationPayload,
    SigningKeyPair,
    Subscription,
)
from famnotify.push.keys import to_transport_key
from famnotify.push.subscription_store import SubscriptionStore
from famnotify.push.transport import PushTransport, WebPushTransport
from famnotify.push.vapid import load_push_config, load_signing_keys

logger = get_logger(__name__)

EXPIRED_STATUS_CODES = {HTTPStatus.NOT_FOUND, HTTPStatus.GONE}


def _extract_status_code(exc: WebPushException) -> int | None:
    """Extract an HTTP status code from a pywebpush exception when available."""
    response = getattr(exc, "response", None)
    if response is None:
        return None

    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def classify_failure(exc: BaseException) -> tuple[DeliveryOutcome, int | None]:
    """Map a delivery exception to an outcome and the status code, if any."""
    if isinstance(exc, WebPushException):
        status_code = _extract_status_code(exc)
        if status_code in EXPIRED_STATUS_CODES:
            return DeliveryOutcome.EXPIRED, status_code
        return DeliveryOutcome.TRANSIENT_FAILURE, status_code
    return DeliveryOutcome.TRANSIENT_FAILURE, None


def subscription_info(subscription: Subscription) -> dict[str, Any]:
    """Subscription info in the shape pywebpush expects."""
    return {
        "endpoint": subscription.endpoint,
        "keys": {
            "p256dh": to_transport_key(subscription.public_key),
            "auth": to_transport_key(subscription.auth_secret),
        },
    }


async def _deliver_to_subscription(
    subscription: Subscription,
    payload: NotificationPayload,
    signing_keys: SigningKeyPair,
    transport: PushTransport,
    store: SubscriptionStore,
    ttl: int,
) -> DeliveryResult:
    """Deliver to one subscription. Never raises."""
    try:
        status_code = await transport.send(
            subscription_info(subscription),
            json.dumps(payload.to_push_data(subscription.recipient_id)),
            signing_keys,
            ttl=ttl,
        )
    except Exception as e:
        outcome, status_code = classify_failure(e)
        result = DeliveryResult(
            recipient_id=subscription.recipient_id,
            endpoint=subscription.endpoint,
            outcome=outcome,
            status_code=status_code,
            error=str(e) or type(e).__name__,
        )
    else:
        return DeliveryResult(
            recipient_id=subscription.recipient_id,
            endpoint=subscription.endpoint,
            outcome=DeliveryOutcome.DELIVERED,
            status_code=status_code,
        )

    if result.outcome == DeliveryOutcome.EXPIRED:
        logger.info(
            "push_endpoint_expired",
            recipient_id=subscription.recipient_id,
            endpoint=subscription.endpoint,
            status_code=result.status_code,
        )
        try:
            await store.delete_by_recipient(subscription.recipient_id, subscription.endpoint)
        except PersistFailure as e:
            # Row stays; the next dispatch prunes it again
            logger.warning("push_prune_failed", recipient_id=subscription.recipient_id, error=e.message)
    else:
        logger.warning(
            "push_delivery_failed",
            recipient_id=subscription.recipient_id,
            status_code=result.status_code,
            error=result.error,
        )

    return result


async def dispatch(
    payload: NotificationPayload,
    store: SubscriptionStore | None = None,
    transport: PushTransport | None = None,
    key_loader: Callable[[], SigningKeyPair] = load_signing_keys,
    ttl: int | None = None,
) -> DispatchReport:
    """
    Deliver a notification to every subscription of the payload's recipients.

    Args:
        payload: Title, body, recipients and optional metadata
        store: Subscription store (defaults to data/push.db)
        transport: Push transport (defaults to pywebpush)
        key_loader: Returns the VAPID signing key pair
        ttl: Seconds the push service may hold the message (defaults to config)

    Returns:
        DispatchReport with one DeliveryResult per subscription

    Raises:
        KeyFetchFailure: if the signing key pair cannot be loaded
    """
    signing_keys = key_loader()

    store = store or SubscriptionStore()
    subscriptions = await store.find_by_recipients(payload.recipient_ids)
    if not subscriptions:
        logger.info("push_dispatch_no_subscriptions", recipients=len(payload.recipient_ids))
        return DispatchReport()

    transport = transport or WebPushTransport()
    if ttl is None:
        ttl = int(load_push_config()["push"]["ttl"])

    results = await asyncio.gather(
        *(
            _deliver_to_subscription(sub, payload, signing_keys, transport, store, ttl)
            for sub in subscriptions
        )
    )

    report = DispatchReport(results=list(results))
    logger.info(
        "push_dispatch_complete",
        total=report.total,
        successful=report.successful,
        expired=report.expired,
        failed=report.failed,
    )
    return report


# CLI interface
if __name__ == "__main__":
    import argparse

    from famnotify.logging_config import setup_logging

    parser = argparse.ArgumentParser(description="Push notification dispatch")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    send_parser = subparsers.add_parser("send", help="Send a notification")
    send_parser.add_argument("--recipient-id", "-r", action="append", required=True, help="Recipient ID (repeatable)")
    send_parser.add_argument("--title", "-t", default="Reminder", help="Notification title")
    send_parser.add_argument("--body", "-b", default="Time for your reminder!", help="Notification body")

    args = parser.parse_args()
    setup_logging()

    if args.command == "send":
        try:
            report = asyncio.run(dispatch(NotificationPayload(
                title=args.title,
                body=args.body,
                recipient_ids=args.recipient_id,
            )))
        except KeyFetchFailure as e:
            print(f"Failed to send: {e.message}")
        else:
            print(json.dumps(report.to_dict(), indent=2))

    else:
        parser.print_help()
