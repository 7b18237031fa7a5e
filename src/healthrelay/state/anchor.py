"""Persistence of the change anchor.

The anchor is the platform's opaque "last seen position" in a change
stream. It is kept in the state store's key-value table so a restart can
resume where the previous process stopped. Persistence is fail-soft: a
failed write leaves the caller's in-memory anchor authoritative and the
next restart re-reads the older value, which only means some deliveries
are seen again.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from healthrelay.state.store import StateStore

logger = logging.getLogger(__name__)

DEFAULT_ANCHOR_KEY = "anchor"


class AnchorStore:
    """Loads and saves the change anchor under a fixed key."""

    def __init__(self, store: StateStore, key: str = DEFAULT_ANCHOR_KEY) -> None:
        self._store = store
        self.key = key

    def load(self) -> bytes | None:
        """Return the persisted anchor, or None when there is none.

        A read failure is treated like a missing anchor.
        """
        try:
            anchor = self._store.get(self.key)
        except sqlite3.Error as e:
            logger.warning("Could not read anchor %r: %s", self.key, e)
            return None
        if anchor is not None:
            logger.debug("Loaded anchor %r (%d bytes)", self.key, len(anchor))
        return anchor

    def save(self, anchor: bytes) -> bool:
        """Persist ``anchor``. Returns False when the write failed."""
        try:
            self._store.set(self.key, anchor)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Could not persist anchor %r: %s", self.key, e)
            return False
        return True
