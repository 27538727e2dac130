"""
Tool: Push Payload Schema
Purpose: Parse incoming push data with explicit defaults and a safe fallback

Usage:
    from famnotify.worker.payload import parse_payload

    payload = parse_payload(event.data)   # never raises
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from famnotify.errors import PayloadParseFailure
from famnotify.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TITLE = "Reminder"
DEFAULT_BODY = "Time for your reminder!"


class PushPayload(BaseModel):
    """Recognized push fields. Anything else in the JSON is ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str = DEFAULT_TITLE
    body: str = DEFAULT_BODY
    userId: str | None = None
    url: str | None = None

    @field_validator("title", "body", mode="before")
    @classmethod
    def unusable_to_default(cls, v: Any, info) -> Any:
        # Per field: a bad title keeps a good body
        if not isinstance(v, str) or not v.strip():
            return DEFAULT_TITLE if info.field_name == "title" else DEFAULT_BODY
        return v

    @field_validator("userId", mode="before")
    @classmethod
    def stringify_user_id(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


FALLBACK_PAYLOAD = PushPayload()


def parse_payload_strict(raw: bytes | str | None) -> PushPayload:
    """
    Parse push data.

    Raises:
        PayloadParseFailure: missing data, invalid JSON, non-object JSON, or
            a userId or url of the wrong type
    """
    if raw is None:
        raise PayloadParseFailure("Push event has no data")

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PayloadParseFailure(f"Push data is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PayloadParseFailure("Push data is not a JSON object")

    try:
        return PushPayload.model_validate(data)
    except ValidationError as e:
        raise PayloadParseFailure(f"Push data does not match schema: {e.error_count()} error(s)") from e


def parse_payload(raw: bytes | str | None) -> PushPayload:
    """Parse push data, falling back to the generic reminder on any failure."""
    try:
        return parse_payload_strict(raw)
    except PayloadParseFailure as e:
        logger.info("push_payload_fallback", reason=e.message)
        return FALLBACK_PAYLOAD
