"""Job posting write store used for seeding and fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Mapping, Sequence

from JobSearch.core.catalog import RelationCatalog, build_catalog
from JobSearch.core.models import PostingStatus
from JobSearch.utils.log import log

if TYPE_CHECKING:
    from JobSearch.storage.db import DatabaseManager

@dataclass(slots=True)
class PostingRecord:
    """Writable posting with its relation memberships by name.

    ``category`` and ``job_type`` are names; they are created on demand.
    ``relations`` maps a relation name (e.g. ``skills``) to target names.
    """

    id: int
    title: str
    company: str
    category: str
    job_type: str
    status: PostingStatus = PostingStatus.OPEN
    description: str = ""
    location: str | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    posted_at: datetime | None = None
    is_deleted: bool = False
    relations: Mapping[str, Sequence[str]] = field(default_factory=dict)


class JobPostingStore:
    """Persists postings and their relation rows.

    Lookup and junction tables come from the relation catalog: mandatory
    relations name the lookup table of their foreign key, optional relations
    name their target and junction tables.
    """

    def __init__(self, db_manager: DatabaseManager, catalog: RelationCatalog | None = None) -> None:
        log.debug("Initializing JobPostingStore")
        self.conn = db_manager.get_connection()
        self.catalog = catalog or build_catalog()
        self._optional = {d.name: d for d in self.catalog.optional()}
        self._lookup_tables = frozenset(d.target for d in (*self.catalog.mandatory(), *self.catalog.optional()))

    def save_postings(self, records: Sequence[PostingRecord]) -> int:
        """Insert or update postings and replace their relation rows.

        Args:
            records: Postings to save.

        Returns:
            Number of postings written.
        """
        if not records:
            return 0

        try:
            for record in records:
                self._save_one(record)
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

        log.debug("Saved %d postings", len(records))
        return len(records)

    def ensure_name(self, table: str, name: str) -> int:
        """Return the id of ``name`` in a lookup table, inserting it if new."""
        if table not in self._lookup_tables:
            raise ValueError(f"Unknown lookup table: {table}")
        self.conn.execute(f"INSERT INTO {table} (name) VALUES (?) ON CONFLICT(name) DO NOTHING", (name,))
        row = self.conn.execute(f"SELECT id FROM {table} WHERE name = ?", (name,)).fetchone()
        return int(row[0])

    def _save_one(self, record: PostingRecord) -> None:
        category_id = self.ensure_name(self.catalog.describe("category").target, record.category)
        job_type_id = self.ensure_name(self.catalog.describe("job_type").target, record.job_type)
        posted_at = int(record.posted_at.timestamp()) if record.posted_at else None

        self.conn.execute(
            """
            INSERT INTO job_postings (
              id, title, description, company, location, status, is_deleted,
              category_id, job_type_id, salary_min, salary_max, posted_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              title = excluded.title,
              description = excluded.description,
              company = excluded.company,
              location = excluded.location,
              status = excluded.status,
              is_deleted = excluded.is_deleted,
              category_id = excluded.category_id,
              job_type_id = excluded.job_type_id,
              salary_min = excluded.salary_min,
              salary_max = excluded.salary_max,
              posted_at = excluded.posted_at
            """,
            (
                record.id,
                record.title,
                record.description,
                record.company,
                record.location,
                record.status.value,
                int(record.is_deleted),
                category_id,
                job_type_id,
                record.salary_min,
                record.salary_max,
                posted_at,
            ),
        )

        for relation, names in record.relations.items():
            descriptor = self._optional.get(relation)
            if descriptor is None:
                raise ValueError(f"Unknown relation for posting {record.id}: {relation}")
            join = descriptor.join
            self.conn.execute(f"DELETE FROM {join.junction} WHERE {join.junction_primary} = ?", (record.id,))
            for name in names:
                target_id = self.ensure_name(descriptor.target, name)
                self.conn.execute(
                    f"INSERT OR IGNORE INTO {join.junction} ({join.junction_primary}, {join.junction_target})"
                    " VALUES (?, ?)",
                    (record.id, target_id),
                )

