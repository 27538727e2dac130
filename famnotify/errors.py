"""
Tool: Push Error Taxonomy
Purpose: Failure reasons and exceptions shared by client, server and worker

Usage:
    from famnotify.errors import FailureReason, PushError, MalformedKey

Each exception carries a FailureReason so client operations can convert
it into an OperationResult and callers can branch on the reason.
"""

from enum import Enum


class FailureReason(str, Enum):
    """Why a push operation failed."""

    UNSUPPORTED_PLATFORM = "unsupported_platform"
    PERMISSION_DENIED = "permission_denied"
    REGISTRATION_FAILURE = "registration_failure"
    KEY_FETCH_FAILURE = "key_fetch_failure"
    MALFORMED_KEY = "malformed_key"
    SUBSCRIBE_FAILURE = "subscribe_failure"
    PERSIST_FAILURE = "persist_failure"
    DELIVERY_EXPIRED = "delivery_expired"
    DELIVERY_TRANSIENT_FAILURE = "delivery_transient_failure"
    PAYLOAD_PARSE_FAILURE = "payload_parse_failure"


class PushError(Exception):
    """Base class for push subsystem failures."""

    reason: FailureReason

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.reason.value)
        self.message = message or self.reason.value


class UnsupportedPlatform(PushError):
    """The runtime has no background worker or push capability."""

    reason = FailureReason.UNSUPPORTED_PLATFORM


class PermissionDenied(PushError):
    """The user has not granted notification permission."""

    reason = FailureReason.PERMISSION_DENIED


class RegistrationFailure(PushError):
    """The background worker could not be registered or activated."""

    reason = FailureReason.REGISTRATION_FAILURE


class KeyFetchFailure(PushError):
    """The VAPID signing key (or key pair) could not be loaded."""

    reason = FailureReason.KEY_FETCH_FAILURE


class MalformedKey(PushError, ValueError):
    """A key string could not be decoded into the expected bytes."""

    reason = FailureReason.MALFORMED_KEY


class SubscribeFailure(PushError):
    """The browser-level push subscribe call failed."""

    reason = FailureReason.SUBSCRIBE_FAILURE


class PersistFailure(PushError):
    """The subscription could not be written to or removed from the store."""

    reason = FailureReason.PERSIST_FAILURE


class DeliveryExpired(PushError):
    """The push service reported the endpoint as gone (404/410)."""

    reason = FailureReason.DELIVERY_EXPIRED


class DeliveryTransientFailure(PushError):
    """Delivery failed for a reason other than an expired endpoint."""

    reason = FailureReason.DELIVERY_TRANSIENT_FAILURE


class PayloadParseFailure(PushError, ValueError):
    """A push payload was not valid JSON or did not match the schema."""

    reason = FailureReason.PAYLOAD_PARSE_FAILURE


__all__ = [
    "FailureReason",
    "PushError",
    "UnsupportedPlatform",
    "PermissionDenied",
    "RegistrationFailure",
    "KeyFetchFailure",
    "MalformedKey",
    "SubscribeFailure",
    "PersistFailure",
    "DeliveryExpired",
    "DeliveryTransientFailure",
    "PayloadParseFailure",
]
