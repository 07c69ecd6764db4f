"""SQLite database utilities."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from JobSearch.storage.migration import run_migrations


class DatabaseManager:
    """Owns the SQLite connection for one database file.

    The connection is opened with ``check_same_thread=False`` so concurrent
    existence checks can share it; SQLite serializes access internally.
    Migrations are applied on construction.

    Supports context manager protocol for automatic connection cleanup.
    """

    def __init__(self, db_path: Path) -> None:
        """Open (and migrate) the database.

        Args:
            db_path: Absolute path or project-relative path to database file,
                or ``:memory:``.
        """
        self.db_path = db_path
        self.conn = ensure_db(db_path)
        run_migrations(self.conn)

    def get_connection(self) -> sqlite3.Connection:
        """Get the shared database connection."""
        return self.conn

    def close(self) -> None:
        """Close the database connection."""
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def __enter__(self) -> DatabaseManager:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def ensure_db(db_path: Path) -> sqlite3.Connection:
    """Ensure database file exists and return connection.

    Args:
        db_path: Absolute path or project-relative path to database file.

    Returns:
        SQLite connection with row mapping and foreign keys enabled.

    Raises:
        OSError: If directory creation fails.
        sqlite3.Error: If database connection fails.
    """
    if str(db_path) != ":memory:":
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
