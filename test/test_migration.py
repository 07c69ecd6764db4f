"""Tests for the schema migration mechanism.

Scenarios:
  1. fresh database      - all tables created, schema_version written
  2. already up to date  - second run executes no DDL
  3. new migration       - v3 applied to an existing DB, old data intact
  4. broken migration    - transaction rolled back, version unchanged
Plus: version-gap validation raises ValueError at startup.
"""

import sqlite3
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

import JobSearch.storage.migration as migration_module
from JobSearch.storage.migration import MIGRATIONS, Migration, run_migrations


def _connect(path: Path) -> sqlite3.Connection:
    return sqlite3.connect(str(path))


def _current_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return row[0] if row else 0


def _table_names(conn: sqlite3.Connection) -> set[str]:
    return {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()}


def _index_names(conn: sqlite3.Connection) -> set[str]:
    return {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='index'").fetchall()}


_LATEST_VERSION = max(m.version for m in MIGRATIONS)


class _MigrationTestCase(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self._conn = _connect(Path(self._tmpdir.name) / "jobs.db")

    def tearDown(self):
        self._conn.close()
        self._tmpdir.cleanup()


class TestFreshDatabase(_MigrationTestCase):
    """First run on a database file that does not yet exist."""

    def test_schema_version_equals_latest(self):
        run_migrations(self._conn)
        self.assertEqual(_current_version(self._conn), _LATEST_VERSION)

    def test_tables_created(self):
        run_migrations(self._conn)
        tables = _table_names(self._conn)
        expected = (
            "schema_version",
            "job_postings",
            "categories",
            "job_types",
            "skills",
            "job_skills",
            "tools",
            "job_tools",
            "personalities",
            "job_personalities",
            "career_paths",
            "job_career_paths",
            "qualifications",
            "job_qualifications",
        )
        for name in expected:
            with self.subTest(table=name):
                self.assertIn(name, tables)

    def test_reverse_junction_indexes_created(self):
        run_migrations(self._conn)
        indexes = _index_names(self._conn)
        self.assertIn("idx_job_skills_skill_id_job", indexes)
        self.assertIn("idx_job_qualifications_qualification_id_job", indexes)

    def test_status_check_constraint(self):
        run_migrations(self._conn)
        self._conn.execute("INSERT INTO categories (id, name) VALUES (1, 'Engineering')")
        with self.assertRaises(sqlite3.IntegrityError):
            self._conn.execute(
                "INSERT INTO job_postings (id, title, company, status, category_id) VALUES (1, 't', 'c', 'archived', 1)"
            )


class TestAlreadyUpToDate(_MigrationTestCase):
    """Second run after DB is already at the latest version."""

    def setUp(self):
        super().setUp()
        run_migrations(self._conn)

    def test_version_unchanged_on_second_run(self):
        version_before = _current_version(self._conn)
        run_migrations(self._conn)
        self.assertEqual(_current_version(self._conn), version_before)

    def test_no_new_tables_on_second_run(self):
        tables_before = _table_names(self._conn)
        run_migrations(self._conn)
        self.assertEqual(_table_names(self._conn), tables_before)


class TestNewMigration(_MigrationTestCase):
    """Simulated future migration applied to an up-to-date database."""

    _NEXT = Migration(
        version=_LATEST_VERSION + 1,
        description="Add remote flag to job_postings",
        sql="ALTER TABLE job_postings ADD COLUMN remote INTEGER;",
    )

    def setUp(self):
        super().setUp()
        run_migrations(self._conn)
        self._conn.execute("INSERT INTO categories (id, name) VALUES (1, 'Engineering')")
        self._conn.execute(
            "INSERT INTO job_postings (id, title, company, status, category_id) VALUES (1, 'Pre', 'Acme', 'open', 1)"
        )
        self._conn.commit()

    def test_version_advances(self):
        with patch.object(migration_module, "MIGRATIONS", list(MIGRATIONS) + [self._NEXT]):
            run_migrations(self._conn)
        self.assertEqual(_current_version(self._conn), _LATEST_VERSION + 1)

    def test_old_data_preserved_with_new_column(self):
        with patch.object(migration_module, "MIGRATIONS", list(MIGRATIONS) + [self._NEXT]):
            run_migrations(self._conn)
        row = self._conn.execute("SELECT title, remote FROM job_postings WHERE id = 1").fetchone()
        self.assertEqual(row[0], "Pre")
        self.assertIsNone(row[1])


class TestRollbackOnError(_MigrationTestCase):
    """Bad migration SQL causes exception; version number must not change."""

    _BAD = Migration(
        version=_LATEST_VERSION + 1,
        description="Intentionally broken migration",
        sql="CREATE TABLE partial (id INTEGER); THIS IS NOT VALID SQL;",
    )

    def setUp(self):
        super().setUp()
        run_migrations(self._conn)

    def test_exception_raised(self):
        with patch.object(migration_module, "MIGRATIONS", list(MIGRATIONS) + [self._BAD]):
            with self.assertRaises(sqlite3.Error):
                run_migrations(self._conn)

    def test_version_and_schema_unchanged_after_bad_migration(self):
        version_before = _current_version(self._conn)
        with patch.object(migration_module, "MIGRATIONS", list(MIGRATIONS) + [self._BAD]):
            with self.assertRaises(sqlite3.Error):
                run_migrations(self._conn)
        self.assertEqual(_current_version(self._conn), version_before)
        self.assertNotIn("partial", _table_names(self._conn))


class TestVersionContinuityValidation(unittest.TestCase):
    """run_migrations raises ValueError if MIGRATIONS has a version gap."""

    def test_gap_raises_value_error(self):
        gap_migrations = list(MIGRATIONS) + [
            Migration(version=_LATEST_VERSION + 2, description="Gap migration", sql="SELECT 1;")
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            conn = _connect(Path(tmpdir) / "jobs.db")
            try:
                with patch.object(migration_module, "MIGRATIONS", gap_migrations):
                    with self.assertRaises(ValueError):
                        run_migrations(conn)
            finally:
                conn.close()


if __name__ == "__main__":
    unittest.main()
