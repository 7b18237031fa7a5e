"""Schema migrations for the state database.

Each migration is a SQL script keyed by the schema version it produces.
Missing versions are applied in order when the store opens the database.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import sqlite3

logger = logging.getLogger(__name__)

_V1_INITIAL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Opaque values by key; the change anchor is stored here
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value BLOB NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- One row per outbound message attempt
CREATE TABLE IF NOT EXISTS notifications (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sent_at TEXT NOT NULL DEFAULT (datetime('now')),
    category TEXT,
    message TEXT NOT NULL,
    outcome TEXT NOT NULL,
    status_code INTEGER,
    error TEXT
);

CREATE INDEX IF NOT EXISTS idx_notifications_sent_at ON notifications(sent_at);
"""

MIGRATIONS: dict[int, str] = {
    1: _V1_INITIAL,
}

CURRENT_SCHEMA_VERSION = max(MIGRATIONS)


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Return the applied schema version (0 for a fresh database)."""
    has_table = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ).fetchone()
    if has_table is None:
        return 0

    (version,) = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return version or 0


def migrate_database(
    conn: sqlite3.Connection,
    target_version: int | None = None,
) -> int:
    """Bring the database up to ``target_version``.

    Args:
        conn: Open database connection
        target_version: Version to reach (default: CURRENT_SCHEMA_VERSION)

    Returns:
        The schema version after migrating

    Raises:
        ValueError: If target_version is not a known version
    """
    target = CURRENT_SCHEMA_VERSION if target_version is None else target_version
    if not 0 <= target <= CURRENT_SCHEMA_VERSION:
        msg = f"Invalid target version: {target} (latest is {CURRENT_SCHEMA_VERSION})"
        raise ValueError(msg)

    current = get_schema_version(conn)
    if current >= target:
        logger.debug("State database is at v%d, nothing to migrate", current)
        return current

    for version in range(current + 1, target + 1):
        conn.executescript(MIGRATIONS[version])
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (version,),
        )
        conn.commit()
        logger.info("Applied state migration v%d", version)

    return target
