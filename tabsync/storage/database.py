"""
Shared SQLite plumbing for the local stores.

Both stores live in one database file. Each declares its own tables and
the schema version it needs; the `_metadata` table records the version
per store.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


class StateStoreError(Exception):
    """Raised when state store operations fail."""
    pass


class SQLiteStore:
    """
    Base class for SQLite-backed stores.

    Subclasses set STORE_NAME, SCHEMA_VERSION and CREATE_STATEMENTS, and
    may override _run_migrations.
    """

    STORE_NAME = "store"
    SCHEMA_VERSION = 1
    CREATE_STATEMENTS: list[str] = []

    CREATE_METADATA_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS _metadata (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """

    def __init__(self, database_path: Path):
        """
        Initialize store.

        Args:
            database_path: Path to SQLite database file
        """
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._initialize_database()
        except sqlite3.Error as e:
            raise StateStoreError(f"Failed to initialize {self.STORE_NAME}: {e}") from e

        logger.debug(f"{self.STORE_NAME} initialized at {self.database_path}")

    def _initialize_database(self) -> None:
        """Create tables and run migrations."""
        version_key = f"{self.STORE_NAME}_schema_version"

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(self.CREATE_METADATA_TABLE_SQL)

            cursor.execute("SELECT value FROM _metadata WHERE key = ?", (version_key,))
            row = cursor.fetchone()
            current_version = int(row[0]) if row else 0

            for statement in self.CREATE_STATEMENTS:
                cursor.execute(statement)

            if current_version < self.SCHEMA_VERSION:
                logger.info(
                    f"Upgrading {self.STORE_NAME} schema from v{current_version} "
                    f"to v{self.SCHEMA_VERSION}"
                )
                self._run_migrations(cursor, current_version)
                cursor.execute(
                    "INSERT OR REPLACE INTO _metadata (key, value) VALUES (?, ?)",
                    (version_key, str(self.SCHEMA_VERSION)),
                )

            conn.commit()

    def _run_migrations(self, cursor: sqlite3.Cursor, from_version: int) -> None:
        """
        Run database migrations.

        Args:
            cursor: Database cursor
            from_version: Current schema version
        """
        pass

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection with proper settings.

        Yields:
            SQLite connection with WAL mode enabled
        """
        conn = sqlite3.connect(
            self.database_path,
            timeout=30.0,
            isolation_level="DEFERRED",
        )

        try:
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
        finally:
            conn.close()
