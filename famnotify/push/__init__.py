"""Push notification delivery components."""

from famnotify.push.keys import (
    decode_server_key,
    encode_subscription_key,
    decode_subscription_key,
)
from famnotify.push.vapid import (
    generate_vapid_keys,
    get_vapid_public_key,
    load_signing_keys,
)
from famnotify.push.subscription_store import SubscriptionStore
from famnotify.push.dispatcher import dispatch

__all__ = [
    "decode_server_key",
    "encode_subscription_key",
    "decode_subscription_key",
    "generate_vapid_keys",
    "get_vapid_public_key",
    "load_signing_keys",
    "SubscriptionStore",
    "dispatch",
]
