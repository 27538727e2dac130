"""
Tool: Push Key Codec
Purpose: Convert between key strings and raw bytes

The VAPID public key reaches clients as unpadded base64url and must be
decoded to the 65-byte uncompressed P-256 point the browser subscribe call
expects. Subscription keys (p256dh, auth) read from a live browser
subscription are stored as standard padded base64.

Usage:
    from famnotify.push.keys import decode_server_key, encode_subscription_key
"""

import base64
import binascii
import re

from famnotify.errors import MalformedKey


# Uncompressed P-256 point: 0x04 + 32-byte X + 32-byte Y
UNCOMPRESSED_POINT_LENGTH = 65
UNCOMPRESSED_POINT_PREFIX = 0x04

# Raw P-256 private scalar
SIGNING_KEY_LENGTH = 32

_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]*={0,2}$")


def _pad(value: str) -> str:
    return value + "=" * (-len(value) % 4)


def decode_server_key(base64url_key: str) -> bytes:
    """
    Decode the server's VAPID public key for the browser subscribe call.

    Args:
        base64url_key: URL-safe base64 string, padding optional

    Returns:
        65 raw bytes of an uncompressed P-256 point

    Raises:
        MalformedKey: on invalid characters, impossible length, or a decoded
            value that is not an uncompressed P-256 point
    """
    if not isinstance(base64url_key, str):
        raise MalformedKey("Server key must be a string")

    key = base64url_key.strip()
    if not key or not _BASE64URL_RE.match(key):
        raise MalformedKey("Server key contains invalid base64url characters")

    unpadded = key.rstrip("=")
    if len(unpadded) % 4 == 1:
        raise MalformedKey("Server key has an impossible base64 length")

    standard = _pad(unpadded).replace("-", "+").replace("_", "/")
    try:
        raw = base64.b64decode(standard, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedKey(f"Server key is not valid base64: {e}") from e

    if len(raw) != UNCOMPRESSED_POINT_LENGTH:
        raise MalformedKey(
            f"Server key decodes to {len(raw)} bytes, expected {UNCOMPRESSED_POINT_LENGTH}"
        )
    if raw[0] != UNCOMPRESSED_POINT_PREFIX:
        raise MalformedKey("Server key is not an uncompressed P-256 point")

    return raw


def encode_subscription_key(raw_bytes: bytes) -> str:
    """Encode a subscription key (p256dh or auth) as standard base64 for storage."""
    return base64.b64encode(bytes(raw_bytes)).decode("ascii")


def decode_subscription_key(value: str) -> bytes:
    """Inverse of encode_subscription_key."""
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        raise MalformedKey(f"Stored subscription key is not valid base64: {e}") from e


def to_transport_key(value: str) -> str:
    """Re-encode a stored subscription key as unpadded base64url for the transport."""
    raw = decode_subscription_key(value)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def encode_signing_key(raw_bytes: bytes) -> str:
    """Encode raw signing-key bytes as the unpadded base64url storage string."""
    return base64.urlsafe_b64encode(bytes(raw_bytes)).rstrip(b"=").decode("ascii")


def decode_signing_key(value: str) -> bytes:
    """Decode an unpadded base64url signing key back to raw bytes."""
    key = value.strip()
    if not _BASE64URL_RE.match(key) or len(key.rstrip("=")) % 4 == 1:
        raise MalformedKey("Signing key contains invalid base64url data")
    try:
        return base64.urlsafe_b64decode(_pad(key.rstrip("=")))
    except (binascii.Error, ValueError) as e:
        raise MalformedKey(f"Signing key is not valid base64url: {e}") from e
