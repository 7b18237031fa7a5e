"""State management module for healthrelay.

This module provides SQLite-based state persistence for:
- The change anchor (resume position in the platform's change stream)
- Notification history

Usage:
    from healthrelay.state import AnchorStore, StateStore
    from healthrelay.paths import get_default_db_path

    store = StateStore(get_default_db_path())  # XDG data path
    anchors = AnchorStore(store)
    anchor = anchors.load()
"""

from healthrelay.state.anchor import DEFAULT_ANCHOR_KEY, AnchorStore
from healthrelay.state.migrations import CURRENT_SCHEMA_VERSION, migrate_database
from healthrelay.state.store import NotificationOutcome, StateStore

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "DEFAULT_ANCHOR_KEY",
    "AnchorStore",
    "NotificationOutcome",
    "StateStore",
    "migrate_database",
]
