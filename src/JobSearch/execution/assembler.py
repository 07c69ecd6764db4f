"""Result assembly for a finished candidate set."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, Sequence

from JobSearch.core.candidates import CandidateSet
from JobSearch.core.catalog import RelationDescriptor
from JobSearch.core.models import JobPosting, Pagination, PostingStatus, SortSpec
from JobSearch.execution.storage import StorageEngine
from JobSearch.utils.log import log


@dataclass(slots=True)
class ResultAssembler:
    """Fetches the projected page for a candidate set.

    ``relations`` are the mandatory relations whose attributes are joined
    into every projected row.
    """

    storage: StorageEngine
    relations: Sequence[RelationDescriptor] = ()

    def assemble(
        self,
        candidates: CandidateSet,
        sort: SortSpec,
        pagination: Pagination,
    ) -> Iterator[JobPosting]:
        """Yield the requested page of postings, once per id.

        The returned generator is lazy and single-pass. Sorting and paging run
        over the final id set only; nothing is fetched for an empty set.

        Args:
            candidates: Final candidate set.
            sort: Result ordering.
            pagination: Result window.

        Returns:
            Iterator of projected postings.
        """
        if not candidates:
            return iter(())
        return self._generate(candidates, sort, pagination)

    def _generate(self, candidates: CandidateSet, sort: SortSpec, pagination: Pagination) -> Iterator[JobPosting]:
        seen: set[int] = set()
        for row in self.storage.fetch_projection(candidates.ids, sort, pagination, self.relations):
            posting = row_to_posting(row)
            if posting.id in seen or posting.id not in candidates:
                log.warning("Dropping unexpected projection row: id=%s", posting.id)
                continue
            seen.add(posting.id)
            yield posting
            if len(seen) >= pagination.page_size:
                return


def row_to_posting(row: Mapping[str, Any]) -> JobPosting:
    """Map one projection row into a ``JobPosting``."""
    return JobPosting(
        id=int(row["id"]),
        title=row["title"],
        company=row["company"],
        status=PostingStatus(row["status"]),
        category_id=int(row["category_id"]),
        category=row["category"],
        job_type_id=int(row["job_type_id"]),
        job_type=row["job_type"],
        description=row.get("description") or "",
        location=row.get("location"),
        salary_min=row.get("salary_min"),
        salary_max=row.get("salary_max"),
        posted_at=_from_timestamp(row.get("posted_at")),
        is_deleted=bool(row.get("is_deleted", False)),
    )


def _from_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
