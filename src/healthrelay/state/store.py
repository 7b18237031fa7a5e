"""SQLite state store for persistence.

This module provides the StateStore class that handles:
- Database initialization with schema migrations
- A small key-value table for opaque values (the change anchor)
- The notification history written by the outbound notifier
- File permissions (chmod 600) on database creation
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from healthrelay.state.migrations import migrate_database

if TYPE_CHECKING:
    from collections.abc import Iterator


logger = logging.getLogger(__name__)


class NotificationOutcome(str, Enum):
    """Result of an outbound notification attempt."""

    SENT = "sent"
    FAILED = "failed"
    DRY_RUN = "dry_run"


class StateStore:
    """SQLite-based state persistence.

    The connection is shared between the tracker threads and the notifier
    worker, so every statement runs under an internal lock.

    Args:
        db_path: Path to the SQLite database file

    Example:
        >>> from healthrelay.paths import get_default_db_path
        >>> store = StateStore(get_default_db_path())
        >>> store.set("anchor", b"opaque")
        >>> store.get("anchor")
        b'opaque'
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path).expanduser().resolve()
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

        self._ensure_database()

    def _ensure_database(self) -> None:
        """Create the directory, run migrations and restrict permissions."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        is_new = not self.db_path.exists()

        conn = self._get_connection()
        migrate_database(conn)

        if is_new and self.db_path.exists():
            try:
                os.chmod(self.db_path, 0o600)  # noqa: PTH101
                logger.debug("Set database permissions to 600: %s", self.db_path)
            except OSError as e:
                logger.warning("Could not set database permissions: %s", e)

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run statements in a transaction, rolling back on error.

        Yields:
            The database connection

        Raises:
            Exception: Re-raises any exception after rollback
        """
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # -------------------------------------------------------------------------
    # Key-Value Operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> bytes | None:
        """Return the value stored under ``key``, or None if absent."""
        with self._lock:
            cursor = self._get_connection().execute(
                "SELECT value FROM kv_store WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()
        return bytes(row["value"]) if row is not None else None

    def set(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                VALUES (?, ?, datetime('now'))
                """,
                (key, sqlite3.Binary(value)),
            )
        logger.debug("Stored value for key %s (%d bytes)", key, len(value))

    def get_updated_at(self, key: str) -> str | None:
        """Return when ``key`` was last written (SQLite UTC timestamp)."""
        with self._lock:
            cursor = self._get_connection().execute(
                "SELECT updated_at FROM kv_store WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()
        return row["updated_at"] if row is not None else None

    # -------------------------------------------------------------------------
    # Notification History
    # -------------------------------------------------------------------------

    def record_notification(
        self,
        message: str,
        outcome: NotificationOutcome,
        *,
        category: str | None = None,
        status_code: int | None = None,
        error: str | None = None,
    ) -> int:
        """Record an outbound notification attempt.

        Returns:
            ID of the inserted row
        """
        with self.transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO notifications
                (sent_at, category, message, outcome, status_code, error)
                VALUES (datetime('now'), ?, ?, ?, ?, ?)
                """,
                (category, message, outcome.value, status_code, error),
            )
            return cursor.lastrowid or 0

    def query_notifications(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return the most recent notifications, newest first."""
        with self._lock:
            cursor = self._get_connection().execute(
                "SELECT * FROM notifications ORDER BY id DESC LIMIT ?",
                (limit,),
            )
            rows = cursor.fetchall()
        return [dict(row) for row in rows]

    def get_notification_counts(self) -> dict[str, int]:
        """Count notifications per outcome."""
        with self._lock:
            cursor = self._get_connection().execute(
                "SELECT outcome, COUNT(*) AS n FROM notifications GROUP BY outcome"
            )
            rows = cursor.fetchall()
        return {row["outcome"]: row["n"] for row in rows}
