"""
Local bookmark metadata store.

Maps the browser's native bookmark ids to BookmarkMetadata (color, tags,
pin state, custom title and order). The browser knows nothing about these
annotations, so they are only meaningful as long as the native ids are.
"""

import json
import logging
import time
from typing import Optional

from ..bookmarks.models import BookmarkMetadata
from .database import SQLiteStore

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class MetadataStore(SQLiteStore):
    """
    SQLite-backed key-value store of bookmark metadata.

    Usage:
        store = MetadataStore(Path("data/tabsync.db"))
        store.set("42", BookmarkMetadata(tags=["work"], is_pinned=True))
        meta = store.get("42")
    """

    STORE_NAME = "metadata_store"
    SCHEMA_VERSION = 1

    CREATE_STATEMENTS = [
        """
        CREATE TABLE IF NOT EXISTS bookmark_metadata (
            native_id TEXT PRIMARY KEY,
            color TEXT,
            tags TEXT NOT NULL DEFAULT '[]',
            is_pinned INTEGER NOT NULL DEFAULT 0,
            custom_title TEXT,
            custom_order INTEGER NOT NULL DEFAULT 0,
            created_at INTEGER,
            updated_at INTEGER
        )
        """,
    ]

    SELECT_COLUMNS = """
        SELECT
            native_id,
            color,
            tags,
            is_pinned,
            custom_title,
            custom_order,
            created_at,
            updated_at
        FROM bookmark_metadata
    """

    def get(self, native_id: str) -> Optional[BookmarkMetadata]:
        """
        Get metadata for a bookmark.

        Returns:
            A fresh BookmarkMetadata, or None if nothing is stored
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(self.SELECT_COLUMNS + " WHERE native_id = ?", (native_id,))
            row = cursor.fetchone()
            if row:
                return self._from_row(row)[1]
            return None

    def get_all(self) -> dict[str, BookmarkMetadata]:
        """Return all stored metadata keyed by native id."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(self.SELECT_COLUMNS + " ORDER BY native_id")
            return dict(self._from_row(row) for row in cursor.fetchall())

    def set(self, native_id: str, metadata: BookmarkMetadata) -> BookmarkMetadata:
        """
        Store metadata for a bookmark, replacing any previous value.

        Unset timestamps are filled with the current time.

        Returns:
            The stored metadata
        """
        stored = metadata.copy()
        now = now_ms()
        if stored.created_at is None:
            stored.created_at = now
        if stored.updated_at is None:
            stored.updated_at = now

        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO bookmark_metadata (
                    native_id,
                    color,
                    tags,
                    is_pinned,
                    custom_title,
                    custom_order,
                    created_at,
                    updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    native_id,
                    stored.color,
                    json.dumps(stored.tags, ensure_ascii=False),
                    1 if stored.is_pinned else 0,
                    stored.custom_title,
                    stored.custom_order,
                    stored.created_at,
                    stored.updated_at,
                ),
            )
            conn.commit()

        logger.debug(f"Saved metadata for bookmark {native_id}")
        return stored

    def delete(self, native_id: str) -> bool:
        """Remove metadata for a bookmark. Returns True if a record existed."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM bookmark_metadata WHERE native_id = ?", (native_id,))
            conn.commit()
            return cursor.rowcount > 0

    def reset(self) -> None:
        """
        Remove all metadata.

        WARNING: This is destructive. Used when native ids are invalidated.
        """
        with self._get_connection() as conn:
            conn.execute("DELETE FROM bookmark_metadata")
            conn.commit()

        logger.warning("All bookmark metadata cleared")

    def count(self) -> int:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM bookmark_metadata")
            return cursor.fetchone()[0]

    @staticmethod
    def _from_row(row: tuple) -> tuple[str, BookmarkMetadata]:
        (
            native_id,
            color,
            tags,
            is_pinned,
            custom_title,
            custom_order,
            created_at,
            updated_at,
        ) = row

        return native_id, BookmarkMetadata(
            tags=json.loads(tags) if tags else [],
            is_pinned=bool(is_pinned),
            custom_order=custom_order or 0,
            color=color,
            custom_title=custom_title,
            created_at=created_at,
            updated_at=updated_at,
        )
