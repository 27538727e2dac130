"""Family Reminders Push Notifications

Delivers reminder and status-change notifications to family members'
devices through Web Push, even when no page is open.

Components:
    push/: Key codec, VAPID signing keys, subscription store, dispatcher
    client/: Device registration, store API client, subscription status tracking
    worker/: Background worker push and click handling
    api/: FastAPI routes for subscription management and dispatch

Database: data/push.db
    - user_push_subscriptions: one row per (recipient, device endpoint)
"""

import sqlite3
from pathlib import Path


# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_PATH = PROJECT_ROOT / "args"
DATA_PATH = PROJECT_ROOT / "data"
DB_PATH = DATA_PATH / "push.db"


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """
    Get database connection, creating tables if needed.

    Args:
        db_path: Override for the database file (defaults to DB_PATH)

    Returns:
        SQLite connection with row_factory set
    """
    path = Path(db_path) if db_path is not None else DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row

    cursor = conn.cursor()

    # Push subscriptions (one row per recipient and device endpoint)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS user_push_subscriptions (
            id TEXT PRIMARY KEY,
            recipient_id TEXT NOT NULL,
            endpoint TEXT NOT NULL,
            p256dh TEXT NOT NULL,
            auth TEXT NOT NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            UNIQUE (recipient_id, endpoint)
        )
    """)

    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_push_subscriptions_endpoint "
        "ON user_push_subscriptions(endpoint)"
    )

    conn.commit()
    return conn


__all__ = [
    "PROJECT_ROOT",
    "CONFIG_PATH",
    "DATA_PATH",
    "DB_PATH",
    "get_connection",
]
