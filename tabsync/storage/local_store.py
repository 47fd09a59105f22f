"""
SQLite-based store for the durable local dashboard state.

Holds the four flat collections (bookmarks, quick links, categories,
custom recent visits), the local settings map, and at most one pending
download awaiting the user's merge decision.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .database import SQLiteStore, StateStoreError
from .models import Collections, Entity, EntityKind

logger = logging.getLogger(__name__)


class LocalStore(SQLiteStore):
    """
    Persistent local state.

    Collections are always replaced as a whole; item order is preserved.

    Usage:
        store = LocalStore(Path("data/tabsync.db"))
        bookmarks = store.get_collection(EntityKind.BOOKMARKS)
        store.replace_collection(EntityKind.BOOKMARKS, bookmarks + [new_bookmark])
    """

    STORE_NAME = "local_store"
    SCHEMA_VERSION = 1

    CREATE_STATEMENTS = [
        """
        CREATE TABLE IF NOT EXISTS collection_items (
            kind TEXT NOT NULL,
            id TEXT NOT NULL,
            position INTEGER NOT NULL,
            payload TEXT NOT NULL,
            PRIMARY KEY (kind, id)
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_collection_position ON collection_items(kind, position)",
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS pending_download (
            slot INTEGER PRIMARY KEY CHECK (slot = 1),
            envelope TEXT NOT NULL,
            received_at TEXT NOT NULL
        )
        """,
    ]

    def get_collection(self, kind: EntityKind) -> list[Entity]:
        """
        Get all entities of one kind, in stored order.

        Args:
            kind: Collection to read

        Returns:
            List of entities
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT payload FROM collection_items WHERE kind = ? ORDER BY position",
                (kind.value,),
            )
            return [kind.entity_class.from_dict(json.loads(row[0])) for row in cursor.fetchall()]

    def get_collections(self) -> Collections:
        """Get all four collections."""
        return Collections(**{kind.attribute: self.get_collection(kind) for kind in EntityKind})

    def replace_collection(self, kind: EntityKind, items: Iterable[Entity]) -> None:
        """
        Replace one collection.

        Raises:
            StateStoreError: If the items contain duplicate ids
        """
        with self._get_connection() as conn:
            try:
                self._write_collection(conn, kind, list(items))
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise StateStoreError(f"Duplicate id in {kind.value}: {e}") from e

        logger.debug(f"Replaced {kind.value} collection")

    def replace_collections(self, collections: Collections) -> None:
        """
        Replace all four collections in a single transaction.

        Raises:
            StateStoreError: If any collection contains duplicate ids
        """
        with self._get_connection() as conn:
            try:
                for kind in EntityKind:
                    self._write_collection(conn, kind, collections.get(kind))
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise StateStoreError(f"Duplicate id in collections: {e}") from e

        counts = ", ".join(f"{len(collections.get(kind))} {kind.value}" for kind in EntityKind)
        logger.info(f"Saved local collections: {counts}")

    def count(self, kind: EntityKind) -> int:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM collection_items WHERE kind = ?", (kind.value,))
            return cursor.fetchone()[0]

    def get_settings(self) -> dict[str, Any]:
        """Get the local settings map."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT key, value FROM settings ORDER BY key")
            return {key: json.loads(value) for key, value in cursor.fetchall()}

    def update_settings(self, values: dict[str, Any]) -> None:
        """Insert or overwrite the given settings keys."""
        with self._get_connection() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                [(key, json.dumps(value, ensure_ascii=False)) for key, value in values.items()],
            )
            conn.commit()

    def save_pending(self, envelope: dict) -> None:
        """
        Keep a downloaded envelope until the user decides how to merge it.

        Replaces any earlier pending download.
        """
        with self._get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO pending_download (slot, envelope, received_at) VALUES (1, ?, ?)",
                (
                    json.dumps(envelope, ensure_ascii=False),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            conn.commit()

        logger.debug("Stored pending download")

    def load_pending(self) -> Optional[dict]:
        """Return the pending envelope document, if any."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT envelope FROM pending_download WHERE slot = 1")
            row = cursor.fetchone()
            if row:
                return json.loads(row[0])
            return None

    def clear_pending(self) -> bool:
        """Drop the pending download. Returns True if one existed."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM pending_download")
            conn.commit()
            return cursor.rowcount > 0

    def clear(self) -> None:
        """
        Clear all local state.

        WARNING: This is destructive. Use only for testing or reset.
        """
        with self._get_connection() as conn:
            conn.execute("DELETE FROM collection_items")
            conn.execute("DELETE FROM settings")
            conn.execute("DELETE FROM pending_download")
            conn.commit()

        logger.warning("All local state cleared")

    @staticmethod
    def _write_collection(conn: sqlite3.Connection, kind: EntityKind, items: list[Entity]) -> None:
        conn.execute("DELETE FROM collection_items WHERE kind = ?", (kind.value,))
        conn.executemany(
            "INSERT INTO collection_items (kind, id, position, payload) VALUES (?, ?, ?, ?)",
            [
                (kind.value, item.id, position, json.dumps(item.to_dict(), ensure_ascii=False))
                for position, item in enumerate(items)
            ],
        )
