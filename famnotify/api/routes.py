"""
Push Notification Routes - Web Push API

Provides endpoints for:
- VAPID key retrieval for client subscription
- Subscription management (upsert, delete, status, endpoint rebinding)
- Dispatch of a notification to one or many recipients
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from famnotify.errors import KeyFetchFailure, PersistFailure
from famnotify.models import NotificationPayload
from famnotify.push.dispatcher import dispatch
from famnotify.push.subscription_store import SubscriptionStore
from famnotify.push.transport import PushTransport, WebPushTransport
from famnotify.push.vapid import get_vapid_public_key, load_signing_keys


router = APIRouter()


def get_store() -> SubscriptionStore:
    return SubscriptionStore()


def get_transport() -> PushTransport:
    return WebPushTransport()


def get_key_loader():
    return load_signing_keys


# =============================================================================
# Request/Response Models
# =============================================================================


class SubscribeRequest(BaseModel):
    """Request to store a push subscription."""

    recipient_id: str = Field(..., min_length=1, description="Recipient to notify")
    endpoint: str = Field(..., min_length=1, description="Web Push endpoint URL")
    p256dh: str = Field(..., min_length=1, description="Client public key (standard base64)")
    auth: str = Field(..., min_length=1, description="Auth secret (standard base64)")


class RebindRequest(BaseModel):
    """Request to move a replaced device subscription onto its new endpoint."""

    old_endpoint: str = Field(..., min_length=1)
    new_endpoint: str = Field(..., min_length=1)
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class SendRequest(BaseModel):
    """Dispatch entry point."""

    recipientIds: list[str] = Field(..., description="Recipients to notify")
    title: str = Field(..., description="Notification title")
    body: str = Field(..., description="Notification body")
    metadata: dict | None = Field(None, description="Extra fields passed to the worker")


# =============================================================================
# VAPID Key Endpoint
# =============================================================================


@router.get("/vapid-key")
async def get_vapid_key():
    """
    Get the server's VAPID public key for client subscription.
    """
    public_key = get_vapid_public_key()

    if not public_key:
        raise HTTPException(
            status_code=503,
            detail="VAPID keys not configured. Generate with: python -m famnotify.push.vapid generate-keys",
        )

    return {"public_key": public_key}


# =============================================================================
# Subscription Endpoints
# =============================================================================


@router.post("/subscriptions")
async def upsert_subscription(
    request: SubscribeRequest,
    store: SubscriptionStore = Depends(get_store),
):
    """
    Store a push subscription. Re-sending the same device updates its keys.
    """
    try:
        await store.upsert(request.recipient_id, request.endpoint, request.p256dh, request.auth)
    except PersistFailure as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {"success": True}


@router.delete("/subscriptions")
async def delete_subscription(
    recipient_id: str = Query(..., min_length=1),
    endpoint: str | None = Query(None, description="Only this device"),
    store: SubscriptionStore = Depends(get_store),
):
    try:
        deleted = await store.delete_by_recipient(recipient_id, endpoint)
    except PersistFailure as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {"success": True, "deleted": deleted}


@router.get("/subscriptions/status")
async def subscription_status(
    recipient_id: str = Query(..., min_length=1),
    endpoint: str | None = Query(None),
    store: SubscriptionStore = Depends(get_store),
):
    try:
        subscribed = await store.exists_for(recipient_id, endpoint)
    except PersistFailure as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {"recipient_id": recipient_id, "subscribed": subscribed}


@router.get("/subscriptions/endpoint-usage")
async def endpoint_usage(
    endpoint: str = Query(..., min_length=1),
    store: SubscriptionStore = Depends(get_store),
):
    try:
        count = await store.count_for_endpoint(endpoint)
    except PersistFailure as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {"count": count}


@router.post("/subscriptions/rebind")
async def rebind_subscription(
    request: RebindRequest,
    store: SubscriptionStore = Depends(get_store),
):
    try:
        moved = await store.rebind_endpoint(
            request.old_endpoint, request.new_endpoint, request.p256dh, request.auth
        )
    except PersistFailure as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {"success": True, "moved": moved}


# =============================================================================
# Dispatch Endpoint
# =============================================================================


@router.post("/send")
async def send_notification(
    request: SendRequest,
    store: SubscriptionStore = Depends(get_store),
    transport: PushTransport = Depends(get_transport),
    key_loader=Depends(get_key_loader),
):
    """
    Send a notification to every device of the given recipients.

    Individual delivery failures are reported in the results; the call
    itself fails only when the signing keys cannot be loaded.
    """
    payload = NotificationPayload(
        title=request.title,
        body=request.body,
        recipient_ids=request.recipientIds,
        metadata=request.metadata or {},
    )

    try:
        report = await dispatch(payload, store=store, transport=transport, key_loader=key_loader)
    except KeyFetchFailure as e:
        raise HTTPException(status_code=503, detail=e.message)
    except PersistFailure as e:
        raise HTTPException(status_code=500, detail=e.message)

    return report.to_dict()
