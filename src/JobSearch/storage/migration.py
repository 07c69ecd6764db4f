"""Schema migration mechanism for the JobSearch SQLite database.

Provides versioned, ordered migrations that are applied automatically at
DatabaseManager initialization time. Each migration runs in an explicit
transaction; failures roll back atomically, leaving the database in a safe
state.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from JobSearch.utils.log import log

# UPSERT (INSERT ... ON CONFLICT DO UPDATE) is used by the posting store.
_MIN_SQLITE_VERSION = (3, 24, 0)

_SCHEMA_VERSION_DDL = """
CREATE TABLE IF NOT EXISTS schema_version (
    id      INTEGER PRIMARY KEY CHECK (id = 1),
    version INTEGER NOT NULL
)
"""

_OPTIONAL_RELATIONS = (
    ("skills", "skill_id"),
    ("tools", "tool_id"),
    ("personalities", "personality_id"),
    ("career_paths", "career_path_id"),
    ("qualifications", "qualification_id"),
)


@dataclass(frozen=True)
class Migration:
    """A single versioned schema migration.

    Attributes:
        version: Monotonically increasing integer, starting at 1.
        description: Human-readable summary of what this migration does.
        sql: One or more semicolon-separated DDL/DML statements to execute.
    """

    version: int
    description: str
    sql: str


def _relation_tables_sql() -> str:
    parts: list[str] = []
    for target, key in _OPTIONAL_RELATIONS:
        parts.append(
            f"""
            CREATE TABLE IF NOT EXISTS {target} (
              id INTEGER PRIMARY KEY,
              name TEXT NOT NULL UNIQUE
            );

            CREATE TABLE IF NOT EXISTS job_{target} (
              job_id INTEGER NOT NULL REFERENCES job_postings(id) ON DELETE CASCADE,
              {key} INTEGER NOT NULL REFERENCES {target}(id) ON DELETE CASCADE,
              PRIMARY KEY (job_id, {key})
            ) WITHOUT ROWID;
            """
        )
    return "\n".join(parts)


def _reverse_indexes_sql() -> str:
    return "\n".join(
        f"CREATE INDEX IF NOT EXISTS idx_job_{target}_{key}_job ON job_{target}({key}, job_id);"
        for target, key in _OPTIONAL_RELATIONS
    )


# ---------------------------------------------------------------------------
# Migration list (append-only; never modify published entries)
# ---------------------------------------------------------------------------

MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Initial schema: job_postings, mandatory and optional relations",
        sql="""
            CREATE TABLE IF NOT EXISTS categories (
              id INTEGER PRIMARY KEY,
              name TEXT NOT NULL UNIQUE
            );

            CREATE TABLE IF NOT EXISTS job_types (
              id INTEGER PRIMARY KEY,
              name TEXT NOT NULL UNIQUE
            );

            CREATE TABLE IF NOT EXISTS job_postings (
              id INTEGER PRIMARY KEY,
              title TEXT NOT NULL,
              description TEXT NOT NULL DEFAULT '',
              company TEXT NOT NULL,
              location TEXT,
              status TEXT NOT NULL CHECK (status IN ('draft', 'open', 'paused', 'closed')),
              is_deleted INTEGER NOT NULL DEFAULT 0,
              category_id INTEGER REFERENCES categories(id),
              job_type_id INTEGER REFERENCES job_types(id),
              salary_min INTEGER,
              salary_max INTEGER,
              posted_at INTEGER
            );

            CREATE INDEX IF NOT EXISTS idx_postings_status
              ON job_postings(status, is_deleted);

            CREATE INDEX IF NOT EXISTS idx_postings_category
              ON job_postings(category_id);

            CREATE INDEX IF NOT EXISTS idx_postings_job_type
              ON job_postings(job_type_id);

            CREATE INDEX IF NOT EXISTS idx_postings_posted
              ON job_postings(posted_at DESC);
        """
        + _relation_tables_sql(),
    ),
    Migration(
        version=2,
        description="Target-first junction indexes for id existence checks",
        sql=_reverse_indexes_sql(),
    ),
]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations to the database.

    Steps performed on every call:
      1. Check that the runtime SQLite library is recent enough.
      2. Validate that MIGRATIONS version numbers are consecutive from 1.
      3. Ensure the schema_version bookkeeping table exists.
      4. Read the current version from schema_version (0 if not yet written).
      5. Execute each migration whose version exceeds the current version,
         inside an explicit transaction.

    Args:
        conn: Active SQLite connection.

    Raises:
        RuntimeError: If the SQLite library is too old.
        ValueError: If MIGRATIONS contains a version gap or does not start at 1.
        sqlite3.Error: If a migration statement fails (transaction is rolled back).
    """
    _check_sqlite_version()
    _validate_migration_list(MIGRATIONS)
    _ensure_version_table(conn)

    current_ver = _get_current_version(conn)
    pending = [m for m in MIGRATIONS if m.version > current_ver]

    if not pending:
        log.debug("schema already at version %d, no migrations to run", current_ver)
        return

    for migration in pending:
        _apply_migration(conn, migration)
        log.info("applied migration v%d: %s", migration.version, migration.description)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _check_sqlite_version() -> None:
    raw = sqlite3.sqlite_version
    parts = tuple(int(x) for x in raw.split("."))
    if parts < _MIN_SQLITE_VERSION:
        required = ".".join(str(x) for x in _MIN_SQLITE_VERSION)
        raise RuntimeError(
            f"SQLite >= {required} is required (found {raw}). "
            "Please upgrade your SQLite library."
        )


def _validate_migration_list(migrations: list[Migration]) -> None:
    """Raise ValueError if migration version numbers are not consecutive from 1.

    An empty list is considered valid (no migrations registered yet).
    """
    if not migrations:
        return
    for expected, m in enumerate(migrations, start=1):
        if m.version != expected:
            raise ValueError(
                f"MIGRATIONS version gap: expected version {expected}, "
                f"got {m.version} (description: {m.description!r}). "
                "Migration versions must be consecutive starting from 1."
            )


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(_SCHEMA_VERSION_DDL)
    conn.commit()


def _get_current_version(conn: sqlite3.Connection) -> int:
    """Return the highest migration version already applied (0 if none)."""
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return row[0] if row else 0


def _apply_migration(conn: sqlite3.Connection, migration: Migration) -> None:
    """Execute a single migration inside an explicit transaction.

    Each statement is executed individually with conn.execute() (never
    executescript(), which would issue an implicit COMMIT and break atomicity).
    After all statements succeed, the schema_version row is updated and the
    transaction is committed. On any failure the transaction is rolled back.

    Raises:
        sqlite3.Error: If any statement fails; the transaction is rolled back.
    """
    conn.execute("BEGIN")
    try:
        statements = [s.strip() for s in migration.sql.split(";") if s.strip()]
        for stmt in statements:
            conn.execute(stmt)
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (id, version) VALUES (1, ?)",
            (migration.version,),
        )
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
