"""
Tool: VAPID Signing Keys
Purpose: Generate, load and expose the key pair that signs Web Push requests

Usage:
    # Generate VAPID keys (one-time setup)
    python -m famnotify.push.vapid generate-keys

    # Get public key
    python -m famnotify.push.vapid get-public-key

    # Validate what the dispatcher will load
    python -m famnotify.push.vapid check

Configuration:
    Environment (VAPID_PUBLIC_KEY, VAPID_PRIVATE_KEY, VAPID_SUBJECT) wins over
    args/push.yaml. The key pair is read fresh on every call so a rotated key
    takes effect on the next dispatch.

Dependencies:
    pip install cryptography pyyaml
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from famnotify import CONFIG_PATH
from famnotify.errors import KeyFetchFailure, MalformedKey
from famnotify.models import SigningKeyPair
from famnotify.push.keys import (
    SIGNING_KEY_LENGTH,
    decode_server_key,
    decode_signing_key,
    encode_signing_key,
)

logger = logging.getLogger(__name__)

CONFIG_FILE = CONFIG_PATH / "push.yaml"
DEFAULT_SUBJECT = "mailto:reminders@example.com"

DEFAULT_PUSH_CONFIG: dict[str, Any] = {
    "ttl": 86400,
    "icon": "/favicon.ico",
    "badge": "/favicon.ico",
    "click_route": "/reminders",
    "worker_script": "/sw.js",
}


def load_push_config(config_file: Path | None = None) -> dict[str, Any]:
    """
    Load args/push.yaml.

    Returns:
        The parsed file merged over DEFAULT_PUSH_CONFIG under the "push" key,
        with the raw "vapid" section kept alongside.
    """
    path = config_file or CONFIG_FILE
    file_config: dict[str, Any] = {}
    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not read push config %s: %s", path, e)
            file_config = {}

    return {
        "push": {**DEFAULT_PUSH_CONFIG, **(file_config.get("push") or {})},
        "vapid": file_config.get("vapid") or {},
    }


def _load_vapid_config(config_file: Path | None = None) -> dict:
    """Load VAPID configuration from environment, then the config file."""
    config = {
        "public_key": os.environ.get("VAPID_PUBLIC_KEY", ""),
        "private_key": os.environ.get("VAPID_PRIVATE_KEY", ""),
        "subject": os.environ.get("VAPID_SUBJECT", ""),
    }

    file_vapid = load_push_config(config_file)["vapid"]
    for name in ("public_key", "private_key", "subject"):
        if not config[name]:
            config[name] = str(file_vapid.get(name) or "")

    if not config["subject"]:
        config["subject"] = DEFAULT_SUBJECT
    return config


def load_signing_keys(config_file: Path | None = None) -> SigningKeyPair:
    """
    Load and validate the VAPID signing key pair.

    Raises:
        KeyFetchFailure: if either key is missing or malformed
    """
    config = _load_vapid_config(config_file)
    if not config["public_key"] or not config["private_key"]:
        raise KeyFetchFailure(
            "VAPID keys not configured. Generate with: python -m famnotify.push.vapid generate-keys"
        )

    try:
        decode_server_key(config["public_key"])
        private_raw = decode_signing_key(config["private_key"])
    except MalformedKey as e:
        raise KeyFetchFailure(f"VAPID key pair is malformed: {e.message}") from e

    if len(private_raw) != SIGNING_KEY_LENGTH:
        raise KeyFetchFailure(
            f"VAPID private key decodes to {len(private_raw)} bytes, expected {SIGNING_KEY_LENGTH}"
        )

    return SigningKeyPair(
        public_key=config["public_key"],
        private_key=config["private_key"],
        subject=config["subject"],
    )


def get_vapid_public_key(config_file: Path | None = None) -> str:
    """
    Get the server's VAPID public key for client subscription.

    Returns:
        The public key string (URL-safe base64) or empty string if not configured.
    """
    return _load_vapid_config(config_file).get("public_key", "")


def generate_vapid_keys() -> dict:
    """
    Generate a new VAPID key pair for Web Push.

    Returns:
        {"public_key": str, "private_key": str, "private_key_pem": str}

    Note:
        Store the private key securely in environment variables.
        The public key is shared with clients for subscription.
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    public_key = private_key.public_key()

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")

    # Uncompressed point format, as browsers expect for applicationServerKey
    public_bytes = public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )

    private_bytes = private_key.private_numbers().private_value.to_bytes(
        SIGNING_KEY_LENGTH, byteorder="big"
    )

    return {
        "public_key": encode_signing_key(public_bytes),
        "private_key": encode_signing_key(private_bytes),
        "private_key_pem": private_pem,
    }


# CLI interface
if __name__ == "__main__":
    import argparse
    import json
    import sys

    parser = argparse.ArgumentParser(description="VAPID signing key tools")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    gen_parser = subparsers.add_parser("generate-keys", help="Generate a new signing key pair")
    gen_parser.add_argument("--subject", default=DEFAULT_SUBJECT, help="mailto: or https: contact for the push service")
    gen_parser.add_argument("--json", action="store_true", help="Print the pair as JSON")
    subparsers.add_parser("get-public-key", help="Print the configured public key")
    subparsers.add_parser("check", help="Validate the configured key pair")

    args = parser.parse_args()

    if args.command == "generate-keys":
        pair = generate_vapid_keys()
        if args.json:
            print(json.dumps({**pair, "subject": args.subject}, indent=2))
        else:
            print("# Paste into .env (keep the private key out of version control)")
            print(f"VAPID_PUBLIC_KEY={pair['public_key']}")
            print(f"VAPID_PRIVATE_KEY={pair['private_key']}")
            print(f"VAPID_SUBJECT={args.subject}")

    elif args.command == "get-public-key":
        public_key = get_vapid_public_key()
        if not public_key:
            print("Not configured. Run: python -m famnotify.push.vapid generate-keys", file=sys.stderr)
            sys.exit(1)
        print(public_key)

    elif args.command == "check":
        try:
            keys = load_signing_keys()
        except KeyFetchFailure as e:
            print(f"Invalid: {e.message}", file=sys.stderr)
            sys.exit(1)
        print(f"OK: {keys!r}")

    else:
        parser.print_help()
