"""Tests for famnotify/worker/payload.py"""

import json

import pytest

from famnotify.errors import FailureReason, PayloadParseFailure
from famnotify.worker.payload import (
    DEFAULT_BODY,
    DEFAULT_TITLE,
    FALLBACK_PAYLOAD,
    parse_payload,
    parse_payload_strict,
)


class TestParsePayload:
    def test_full_payload(self):
        payload = parse_payload(json.dumps({
            "title": "Bins",
            "body": "Take out the bins",
            "userId": "u1",
            "url": "/reminders/7",
        }).encode())

        assert payload.title == "Bins"
        assert payload.body == "Take out the bins"
        assert payload.userId == "u1"
        assert payload.url == "/reminders/7"

    def test_missing_fields_get_defaults(self):
        payload = parse_payload('{"userId": "u1"}')

        assert payload.title == DEFAULT_TITLE
        assert payload.body == DEFAULT_BODY

    def test_blank_fields_get_defaults(self):
        payload = parse_payload('{"title": "  ", "body": null}')

        assert payload.title == DEFAULT_TITLE
        assert payload.body == DEFAULT_BODY

    def test_unknown_fields_ignored(self):
        payload = parse_payload('{"title": "Hi", "priority": "high"}')

        assert payload.title == "Hi"

    def test_wrong_type_title_keeps_body(self):
        payload = parse_payload('{"title": 5, "body": "Bins"}')

        assert payload.title == DEFAULT_TITLE
        assert payload.body == "Bins"

    def test_wrong_type_body_keeps_title(self):
        payload = parse_payload('{"title": "Bins", "body": {"text": "Take out the bins"}, "userId": "u1"}')

        assert payload.title == "Bins"
        assert payload.body == DEFAULT_BODY
        assert payload.userId == "u1"

    def test_numeric_user_id_becomes_string(self):
        assert parse_payload('{"userId": 42}').userId == "42"

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            b"",
            b"not json",
            b"\xff\xfe",
            "[1, 2, 3]",
            '"just a string"',
            '{"title": "Hi", "userId": ["not", "a", "string"]}',
        ],
    )
    def test_unreadable_data_falls_back(self, raw):
        assert parse_payload(raw) == FALLBACK_PAYLOAD

    def test_strict_parse_raises(self):
        with pytest.raises(PayloadParseFailure) as exc_info:
            parse_payload_strict(b"not json")

        assert exc_info.value.reason == FailureReason.PAYLOAD_PARSE_FAILURE
