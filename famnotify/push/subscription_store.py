"""
Tool: Push Subscription Store
Purpose: Persist Web Push subscriptions keyed by (recipient, endpoint)

Usage:
    from famnotify.push.subscription_store import SubscriptionStore

    store = SubscriptionStore()
    await store.upsert("u1", endpoint, p256dh, auth)
    subs = await store.find_by_recipients(["u1", "u2"])

    # CLI
    python -m famnotify.push.subscription_store list --recipient-id u1
    python -m famnotify.push.subscription_store stats

One recipient may hold several devices (several endpoints). Re-subscribing
the same device for the same recipient updates the keys in place. Every
operation touches rows independently; none needs a cross-row transaction.
"""

import asyncio
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from famnotify import DB_PATH, get_connection
from famnotify.errors import PersistFailure
from famnotify.models import Subscription

logger = logging.getLogger(__name__)


class SubscriptionStore:
    """SQLite-backed table of push subscriptions."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = Path(db_path) if db_path is not None else DB_PATH

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        try:
            conn = get_connection(self.db_path)
        except sqlite3.Error as e:
            raise PersistFailure(f"Subscription store unavailable: {e}") from e

        try:
            yield conn.cursor()
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistFailure(f"Subscription store error: {e}") from e
        finally:
            conn.close()

    async def upsert(
        self,
        recipient_id: str,
        endpoint: str,
        public_key: str,
        auth_secret: str,
    ) -> None:
        """
        Insert a subscription, or update its keys if (recipient, endpoint) exists.

        Calling repeatedly with identical data leaves a single unchanged row.
        """
        if not recipient_id or not endpoint or not public_key or not auth_secret:
            raise PersistFailure("Missing required subscription fields")

        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO user_push_subscriptions
                (id, recipient_id, endpoint, p256dh, auth, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (recipient_id, endpoint)
                DO UPDATE SET p256dh = excluded.p256dh, auth = excluded.auth
                """,
                (
                    Subscription.generate_id(),
                    recipient_id,
                    endpoint,
                    public_key,
                    auth_secret,
                    datetime.now().isoformat(),
                ),
            )

    async def delete_by_recipient(self, recipient_id: str, endpoint: str | None = None) -> int:
        """
        Delete one device row (endpoint given) or all rows for the recipient.

        Deleting rows that do not exist is not an error.

        Returns:
            Number of rows removed
        """
        with self._cursor() as cursor:
            if endpoint is None:
                cursor.execute(
                    "DELETE FROM user_push_subscriptions WHERE recipient_id = ?",
                    (recipient_id,),
                )
            else:
                cursor.execute(
                    "DELETE FROM user_push_subscriptions WHERE recipient_id = ? AND endpoint = ?",
                    (recipient_id, endpoint),
                )
            return cursor.rowcount

    async def find_by_recipients(self, recipient_ids: list[str]) -> list[Subscription]:
        """Bulk read of every subscription for the given recipients."""
        unique_ids = list(dict.fromkeys(recipient_ids))
        if not unique_ids:
            return []

        placeholders = ", ".join("?" for _ in unique_ids)
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                SELECT * FROM user_push_subscriptions
                WHERE recipient_id IN ({placeholders})
                ORDER BY created_at, id
                """,
                unique_ids,
            )
            rows = cursor.fetchall()

        return [Subscription.from_row(dict(row)) for row in rows]

    async def list_for_recipient(self, recipient_id: str) -> list[Subscription]:
        return await self.find_by_recipients([recipient_id])

    async def exists_for(self, recipient_id: str, endpoint: str | None = None) -> bool:
        """
        Check if the recipient has a stored subscription.

        Args:
            recipient_id: The recipient
            endpoint: Restrict the check to one device

        Returns:
            True if at least one matching row exists
        """
        with self._cursor() as cursor:
            if endpoint is None:
                cursor.execute(
                    "SELECT 1 FROM user_push_subscriptions WHERE recipient_id = ? LIMIT 1",
                    (recipient_id,),
                )
            else:
                cursor.execute(
                    "SELECT 1 FROM user_push_subscriptions "
                    "WHERE recipient_id = ? AND endpoint = ? LIMIT 1",
                    (recipient_id, endpoint),
                )
            return cursor.fetchone() is not None

    async def count_for_endpoint(self, endpoint: str) -> int:
        """Number of recipients still registered on a device endpoint."""
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT COUNT(*) FROM user_push_subscriptions WHERE endpoint = ?",
                (endpoint,),
            )
            return cursor.fetchone()[0]

    async def rebind_endpoint(
        self,
        old_endpoint: str,
        new_endpoint: str,
        public_key: str,
        auth_secret: str,
    ) -> int:
        """
        Move every row of a replaced device subscription onto its new endpoint.

        Rows whose recipient already has the new endpoint are dropped.

        Returns:
            Number of rows moved
        """
        if old_endpoint == new_endpoint:
            return 0

        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE OR IGNORE user_push_subscriptions
                SET endpoint = ?, p256dh = ?, auth = ?
                WHERE endpoint = ?
                """,
                (new_endpoint, public_key, auth_secret, old_endpoint),
            )
            moved = cursor.rowcount
            cursor.execute(
                "DELETE FROM user_push_subscriptions WHERE endpoint = ?",
                (old_endpoint,),
            )

        if moved:
            logger.info("Rebound %d subscription(s) to a new device endpoint", moved)
        return moved

    async def get_stats(self, recipient_id: str | None = None) -> dict:
        """Subscription counts, optionally for one recipient."""
        with self._cursor() as cursor:
            if recipient_id:
                cursor.execute(
                    """
                    SELECT COUNT(*) AS total, COUNT(DISTINCT endpoint) AS devices
                    FROM user_push_subscriptions
                    WHERE recipient_id = ?
                    """,
                    (recipient_id,),
                )
            else:
                cursor.execute(
                    """
                    SELECT
                        COUNT(*) AS total,
                        COUNT(DISTINCT recipient_id) AS recipients,
                        COUNT(DISTINCT endpoint) AS devices
                    FROM user_push_subscriptions
                    """
                )
            row = cursor.fetchone()

        return dict(row) if row else {}


# CLI interface
if __name__ == "__main__":
    import argparse
    import json

    parser = argparse.ArgumentParser(description="Push subscription management")
    parser.add_argument("--db", help="Database path (defaults to data/push.db)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    list_parser = subparsers.add_parser("list", help="List subscriptions for a recipient")
    list_parser.add_argument("--recipient-id", "-r", required=True, help="Recipient ID")

    stats_parser = subparsers.add_parser("stats", help="Get subscription statistics")
    stats_parser.add_argument("--recipient-id", "-r", help="Optional recipient ID")

    args = parser.parse_args()
    store = SubscriptionStore(Path(args.db) if args.db else None)

    if args.command == "list":
        subs = asyncio.run(store.list_for_recipient(args.recipient_id))
        print(f"Found {len(subs)} subscriptions:")
        for sub in subs:
            print(f"  {sub.id}: {sub.endpoint} (since {sub.created_at:%Y-%m-%d %H:%M})")

    elif args.command == "stats":
        stats = asyncio.run(store.get_stats(args.recipient_id))
        print(json.dumps(stats, indent=2))

    else:
        parser.print_help()
