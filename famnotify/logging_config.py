"""
Structured logging for the push subsystem, using structlog over stdlib.

JSON output in production, console output in development. Push endpoints
embed a per-device token and subscriptions carry key material, so every
event passes through `redact_push_secrets` before it is rendered.

Usage:
    from famnotify.logging_config import get_logger, setup_logging

    setup_logging()                      # FAMNOTIFY_LOG_LEVEL / FAMNOTIFY_LOG_FORMAT
    logger = get_logger(__name__)
    logger.info("push_subscribed", recipient_id="u1", endpoint=endpoint)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any
from urllib.parse import urlsplit

import structlog

SECRET_FIELDS = frozenset({"private_key", "p256dh", "auth", "auth_secret"})
ENDPOINT_FIELDS = frozenset({"endpoint", "old_endpoint", "new_endpoint"})
REDACTED = "[redacted]"


def _shorten_endpoint(value: Any) -> Any:
    """Keep the push service origin and drop the device token."""
    if not isinstance(value, str):
        return value
    parts = urlsplit(value)
    if not parts.scheme or not parts.netloc:
        return value
    return f"{parts.scheme}://{parts.netloc}/…"


def redact_push_secrets(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor hiding key material and device tokens."""
    for key in list(event_dict):
        if key in SECRET_FIELDS:
            event_dict[key] = REDACTED
        elif key in ENDPOINT_FIELDS:
            event_dict[key] = _shorten_endpoint(event_dict[key])
    return event_dict


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    if level is None:
        level = os.environ.get("FAMNOTIFY_LOG_LEVEL", "INFO")

    if json_output is None:
        json_output = os.environ.get("FAMNOTIFY_LOG_FORMAT", "").lower() == "json"

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_push_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdlib records (uvicorn, pywebpush) go through the same chain
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # pywebpush logs full request bodies at DEBUG
    logging.getLogger("pywebpush").setLevel(max(numeric_level, logging.INFO))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["get_logger", "redact_push_secrets", "setup_logging"]
