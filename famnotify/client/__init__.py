"""Client-side push registration and subscription status."""

from famnotify.client.api_client import PushApiClient
from famnotify.client.reconciliation import SubscriptionStatusTracker
from famnotify.client.registration import PushSession, RegistrationManager

__all__ = [
    "PushApiClient",
    "PushSession",
    "RegistrationManager",
    "SubscriptionStatusTracker",
]
