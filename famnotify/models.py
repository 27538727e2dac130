"""
Tool: Push Notification Models
Purpose: Data structures for push subscriptions, dispatch and client state

Usage:
    from famnotify.models import (
        Subscription,
        SigningKeyPair,
        NotificationPayload,
        DeliveryOutcome,
        DeliveryResult,
        DispatchReport,
        OperationResult,
        PermissionState,
        SubscriptionState,
    )
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from famnotify.errors import FailureReason, PushError


class PermissionState(str, Enum):
    """Platform notification permission."""

    DEFAULT = "default"
    DENIED = "denied"
    GRANTED = "granted"


class DeliveryOutcome(str, Enum):
    """Result of one delivery attempt to one subscription."""

    DELIVERED = "delivered"
    EXPIRED = "expired"
    TRANSIENT_FAILURE = "transient_failure"


class SubscriptionState(str, Enum):
    """Aggregate subscription state for a set of recipients."""

    ALL_SUBSCRIBED = "all_subscribed"
    SOME_SUBSCRIBED = "some_subscribed"
    NONE_SUBSCRIBED = "none_subscribed"


@dataclass
class Subscription:
    """
    Web Push subscription for one recipient on one device.

    Keys are stored as standard base64 and passed through to the transport.
    """

    recipient_id: str
    endpoint: str
    public_key: str  # p256dh
    auth_secret: str
    id: str = field(default_factory=lambda: Subscription.generate_id())
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict using the table's column names."""
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "endpoint": self.endpoint,
            "p256dh": self.public_key,
            "auth": self.auth_secret,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Subscription":
        """Create from a database row."""
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            id=row["id"],
            recipient_id=row["recipient_id"],
            endpoint=row["endpoint"],
            public_key=row["p256dh"],
            auth_secret=row["auth"],
            created_at=created_at or datetime.now(),
        )

    @staticmethod
    def generate_id() -> str:
        """Generate a new subscription ID."""
        return f"sub_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class SigningKeyPair:
    """VAPID key pair used to sign every outgoing push request."""

    public_key: str  # base64url uncompressed P-256 point
    private_key: str  # base64url raw 32-byte scalar
    subject: str  # mailto: or https: contact for the push service

    def __repr__(self) -> str:
        return f"SigningKeyPair(public_key={self.public_key!r}, subject={self.subject!r})"


@dataclass
class NotificationPayload:
    """A message to fan out to every device of the given recipients."""

    title: str
    body: str
    recipient_ids: list[str]
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_push_data(self, recipient_id: str) -> dict[str, Any]:
        """JSON body delivered to one recipient's worker."""
        return {
            **self.metadata,
            "title": self.title,
            "body": self.body,
            "userId": recipient_id,
        }


@dataclass
class DeliveryResult:
    """Outcome of delivering to a single subscription."""

    recipient_id: str
    endpoint: str
    outcome: DeliveryOutcome
    status_code: int | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome == DeliveryOutcome.DELIVERED

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "recipientId": self.recipient_id,
            "success": self.success,
        }
        if self.status_code is not None:
            result["statusCode"] = str(self.status_code)
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class DispatchReport:
    """Aggregate result of one dispatch call."""

    results: list[DeliveryResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.outcome == DeliveryOutcome.DELIVERED)

    @property
    def expired(self) -> int:
        return sum(1 for r in self.results if r.outcome == DeliveryOutcome.EXPIRED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.outcome == DeliveryOutcome.TRANSIENT_FAILURE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "expired": self.expired,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a client-side subscribe/unsubscribe operation.

    Either success (optionally carrying the endpoint involved) or a failure
    tagged with a FailureReason.
    """

    success: bool
    reason: FailureReason | None = None
    detail: str | None = None
    endpoint: str | None = None

    @classmethod
    def ok(cls, endpoint: str | None = None) -> "OperationResult":
        return cls(success=True, endpoint=endpoint)

    @classmethod
    def fail(cls, reason: FailureReason, detail: str | None = None) -> "OperationResult":
        return cls(success=False, reason=reason, detail=detail)

    @classmethod
    def from_error(cls, error: PushError) -> "OperationResult":
        return cls(success=False, reason=error.reason, detail=error.message)
