"""Storage layer for JobSearch.

Provides database management, schema migrations, the SQLite storage
capability used by the search engine, and the posting write store.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from JobSearch.storage.db import DatabaseManager
from JobSearch.storage.engine import SqliteStorageEngine
from JobSearch.storage.migration import run_migrations
from JobSearch.storage.postings import JobPostingStore, PostingRecord
from JobSearch.utils.log import log

if TYPE_CHECKING:
    from JobSearch.config import AppConfig


def create_storage(config: AppConfig) -> tuple[DatabaseManager, SqliteStorageEngine]:
    """Open the configured database and wrap it in a storage engine.

    Args:
        config: Application configuration containing storage settings.

    Returns:
        Tuple of (db_manager, storage_engine).
    """
    db_path = Path(config.storage.db_path)
    db_manager = DatabaseManager(db_path)
    log.info("Database opened: %s", db_path)
    return db_manager, SqliteStorageEngine(db_manager.get_connection())


__all__ = [
    "DatabaseManager",
    "JobPostingStore",
    "PostingRecord",
    "SqliteStorageEngine",
    "create_storage",
    "run_migrations",
]
