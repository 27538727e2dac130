"""Background worker: push display, notification clicks, control messages."""

from famnotify.worker.handler import NotificationWorker, WorkerState
from famnotify.worker.payload import PushPayload, parse_payload

__all__ = [
    "NotificationWorker",
    "WorkerState",
    "PushPayload",
    "parse_payload",
]
