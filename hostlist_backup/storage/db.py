"""
SQLite database module for hosts sources and host list items.

Provides persistent storage for subscribed hosts sources and user host rules.
"""

import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import Optional

from hostlist_backup.lists import HostListItem, HostsSource

# SQL Schema for hosts sources and host list items
SCHEMA = """
CREATE TABLE IF NOT EXISTS hosts_sources (
    id INTEGER PRIMARY KEY,
    url TEXT NOT NULL CHECK (url <> ''),
    enabled BOOLEAN NOT NULL DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS host_list_items (
    id INTEGER PRIMARY KEY,
    host TEXT NOT NULL CHECK (host <> ''),
    type TEXT NOT NULL CHECK (type IN ('block', 'allow', 'redirect')),
    enabled BOOLEAN NOT NULL DEFAULT 1,
    redirection TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_hosts_sources_url ON hosts_sources(url);
CREATE INDEX IF NOT EXISTS idx_host_list_items_type ON host_list_items(type);
"""


class StorageError(Exception):
    """Raised when a storage query or insert fails."""

    pass


class HostListDatabase:
    """
    SQLite database manager for hosts sources and host list items.

    Provides methods for:
    - Reading every stored source and host list item
    - Appending sources and host list items
    - Grouping several inserts into a single transaction

    Inserts never deduplicate: storing the same source twice gives two rows.

    Usage:
        db = HostListDatabase('/path/to/hostlist.db')
        db.initialize()

        # Or use in-memory for testing:
        db = HostListDatabase(':memory:')
        db.initialize()

        # All-or-nothing inserts
        with db.transaction():
            db.insert_source(HostsSource("https://example.com/hosts"))
            db.insert_host_item(HostListItem("ads.example.com", ListType.BLOCK))
    """

    def __init__(self, db_path: str):
        """
        Initialize the database manager.

        Args:
            db_path: Path to SQLite database file, or ':memory:' for in-memory database
        """
        self.db_path = db_path
        self._shared_connection: Optional[sqlite3.Connection] = None
        self._local = threading.local()

    def _get_connection(self) -> sqlite3.Connection:
        """
        Get a database connection.

        For in-memory databases, returns a shared connection to ensure
        schema persists across operations. For file databases, creates
        a new connection each time.

        Returns:
            sqlite3.Connection: Database connection
        """
        if self.db_path == ":memory:":
            # Shared across the caller and background backup threads
            if self._shared_connection is None:
                self._shared_connection = sqlite3.connect(
                    ":memory:", check_same_thread=False
                )
                self._shared_connection.row_factory = sqlite3.Row
            return self._shared_connection
        else:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Inside transaction(), yields the transaction connection and leaves
        commit or rollback to the transaction.

        Yields:
            sqlite3.Connection: Database connection

        Raises:
            StorageError: If a database operation fails

        Usage:
            with db.connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT * FROM hosts_sources")
        """
        active = getattr(self._local, "transaction", None)
        if active is not None:
            try:
                yield active
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
            return

        conn = self._get_connection()
        is_shared = self.db_path == ":memory:"
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            # Only close if not using shared connection
            if not is_shared:
                conn.close()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """
        Run every operation issued in the block in one transaction.

        Commits when the block exits normally and rolls back every
        operation of the block on any exception.

        Raises:
            StorageError: If the transaction cannot be opened or committed
        """
        if getattr(self._local, "transaction", None) is not None:
            # Nested: the outer transaction owns commit and rollback
            yield
            return

        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise StorageError(str(e)) from e
        is_shared = self.db_path == ":memory:"
        self._local.transaction = conn
        try:
            yield
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._local.transaction = None
            if not is_shared:
                conn.close()

    def initialize(self) -> None:
        """
        Initialize the database schema.

        Creates the hosts_sources and host_list_items tables if they don't exist.
        """
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    # =========================================================================
    # Hosts Source Operations
    # =========================================================================

    def get_all_sources(self) -> list[HostsSource]:
        """
        Get every stored hosts source.

        Returns:
            List of HostsSource in insertion order
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT id, url, enabled FROM hosts_sources ORDER BY id"
            )
            return [HostsSource.from_row(row) for row in cursor.fetchall()]

    def insert_source(self, source: HostsSource) -> int:
        """
        Append a hosts source.

        Args:
            source: The source to store

        Returns:
            Row id of the stored source (also set on source.id)
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "INSERT INTO hosts_sources (url, enabled) VALUES (?, ?)",
                (source.url, source.enabled),
            )
            source.id = cursor.lastrowid
            return cursor.lastrowid

    def count_sources(self) -> int:
        """Get the number of stored hosts sources."""
        with self.connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM hosts_sources")
            result = cursor.fetchone()
            return int(result[0]) if result else 0

    # =========================================================================
    # Host List Item Operations
    # =========================================================================

    def get_all_host_items(self) -> list[HostListItem]:
        """
        Get every stored host list item, whatever its type.

        Returns:
            List of HostListItem in insertion order
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """
                SELECT id, host, type, enabled, redirection
                FROM host_list_items
                ORDER BY id
                """
            )
            return [HostListItem.from_row(row) for row in cursor.fetchall()]

    def insert_host_item(self, item: HostListItem) -> int:
        """
        Append a host list item.

        Args:
            item: The item to store

        Returns:
            Row id of the stored item (also set on item.id)
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO host_list_items (host, type, enabled, redirection)
                VALUES (?, ?, ?, ?)
                """,
                (item.host, item.type.value, item.enabled, item.redirection),
            )
            item.id = cursor.lastrowid
            return cursor.lastrowid

    def count_host_items(self) -> int:
        """Get the number of stored host list items."""
        with self.connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM host_list_items")
            result = cursor.fetchone()
            return int(result[0]) if result else 0

    # =========================================================================
    # Utility Operations
    # =========================================================================

    def clear(self) -> None:
        """Delete every stored source and host list item."""
        with self.connection() as conn:
            conn.execute("DELETE FROM hosts_sources")
            conn.execute("DELETE FROM host_list_items")
