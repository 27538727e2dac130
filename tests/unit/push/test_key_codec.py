"""Tests for famnotify/push/keys.py

The key codec converts the VAPID public key for the browser subscribe call
and stores subscription keys. Malformed input must fail loudly instead of
producing a truncated key.
"""

import base64
import os

import pytest

from famnotify.errors import FailureReason, MalformedKey
from famnotify.push.keys import (
    decode_server_key,
    decode_signing_key,
    decode_subscription_key,
    encode_signing_key,
    encode_subscription_key,
    to_transport_key,
)


class TestDecodeServerKey:
    """Tests for decoding the base64url VAPID public key."""

    def test_generated_key_decodes_to_65_bytes(self, vapid_keys):
        raw = decode_server_key(vapid_keys["public_key"])

        assert len(raw) == 65
        assert raw[0] == 0x04

    def test_accepts_padded_input(self, vapid_keys):
        padded = vapid_keys["public_key"] + "=" * (-len(vapid_keys["public_key"]) % 4)

        assert decode_server_key(padded) == decode_server_key(vapid_keys["public_key"])

    def test_translates_url_safe_alphabet(self):
        # Force bytes that encode to '-' and '_' in base64url
        point = b"\x04" + b"\xfb\xff" * 32
        encoded = base64.urlsafe_b64encode(point).rstrip(b"=").decode()
        assert "-" in encoded or "_" in encoded

        assert decode_server_key(encoded) == point

    @pytest.mark.parametrize(
        "bad_key",
        [
            "",
            "not a key!",
            "abc+def/ghi",  # standard alphabet is not base64url
            "A",  # impossible length
            "BAAA",  # decodes, but far too short
        ],
    )
    def test_rejects_malformed_input(self, bad_key):
        with pytest.raises(MalformedKey) as exc_info:
            decode_server_key(bad_key)

        assert exc_info.value.reason == FailureReason.MALFORMED_KEY

    def test_rejects_wrong_length(self):
        too_long = base64.urlsafe_b64encode(b"\x04" + bytes(65)).rstrip(b"=").decode()

        with pytest.raises(MalformedKey):
            decode_server_key(too_long)

    def test_rejects_compressed_point_prefix(self):
        wrong_prefix = base64.urlsafe_b64encode(b"\x02" + bytes(64)).rstrip(b"=").decode()

        with pytest.raises(MalformedKey):
            decode_server_key(wrong_prefix)

    def test_rejects_non_string(self):
        with pytest.raises(MalformedKey):
            decode_server_key(b"BAAA")  # type: ignore[arg-type]


class TestSubscriptionKeys:
    """Tests for storage encoding of p256dh/auth keys."""

    def test_round_trips_every_length(self):
        for length in range(0, 101):
            raw = os.urandom(length)
            assert decode_subscription_key(encode_subscription_key(raw)) == raw

    def test_uses_standard_padded_alphabet(self):
        encoded = encode_subscription_key(b"\xfb\xff\xfe\x01")

        assert encoded == "+//+AQ=="

    def test_decode_rejects_garbage(self):
        with pytest.raises(MalformedKey):
            decode_subscription_key("***")

    def test_transport_key_is_unpadded_base64url(self):
        raw = b"\xfb\xff\xfe\x01"

        transport_key = to_transport_key(encode_subscription_key(raw))

        assert transport_key == "-__-AQ"


class TestSigningKeys:
    def test_round_trip(self):
        raw = os.urandom(32)

        encoded = encode_signing_key(raw)

        assert "=" not in encoded
        assert decode_signing_key(encoded) == raw

    def test_decode_rejects_invalid(self):
        with pytest.raises(MalformedKey):
            decode_signing_key("a+b/")
