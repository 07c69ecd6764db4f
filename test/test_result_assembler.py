"""Tests for result assembly."""

from __future__ import annotations

import sys
import unittest
from datetime import datetime, timezone
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from JobSearch.core.candidates import CandidateSet
from JobSearch.core.models import Pagination, PostingStatus, SortSpec
from JobSearch.execution.assembler import ResultAssembler, row_to_posting


def _row(pid: int, **overrides) -> dict:
    row = {
        "id": pid,
        "title": f"Job {pid}",
        "company": "Acme",
        "status": "open",
        "category_id": 1,
        "category": "Engineering",
        "job_type_id": 2,
        "job_type": "Full-time",
        "description": None,
        "location": None,
        "salary_min": None,
        "salary_max": None,
        "posted_at": None,
        "is_deleted": 0,
    }
    row.update(overrides)
    return row


class _ProjectionStub:
    def __init__(self, rows: list[dict]) -> None:
        self.rows = rows
        self.calls = 0

    def fetch_projection(self, ids, sort, pagination, relations):
        self.calls += 1
        return iter(self.rows)


class TestResultAssembler(unittest.TestCase):
    def test_empty_set_makes_no_call(self) -> None:
        storage = _ProjectionStub([_row(1)])
        postings = list(ResultAssembler(storage).assemble(CandidateSet(), SortSpec(), Pagination()))
        self.assertEqual(postings, [])
        self.assertEqual(storage.calls, 0)

    def test_lazy_until_iterated(self) -> None:
        storage = _ProjectionStub([_row(1)])
        postings = ResultAssembler(storage).assemble(CandidateSet.of([1]), SortSpec(), Pagination())
        self.assertEqual(storage.calls, 0)
        self.assertEqual([p.id for p in postings], [1])
        self.assertEqual(storage.calls, 1)

    def test_keeps_storage_order(self) -> None:
        storage = _ProjectionStub([_row(3), _row(1), _row(2)])
        postings = ResultAssembler(storage).assemble(CandidateSet.of([1, 2, 3]), SortSpec(), Pagination())
        self.assertEqual([p.id for p in postings], [3, 1, 2])

    def test_drops_duplicate_and_unknown_rows(self) -> None:
        storage = _ProjectionStub([_row(1), _row(1), _row(99), _row(3)])
        with self.assertLogs("JobSearch", level="WARNING") as logs:
            postings = list(
                ResultAssembler(storage).assemble(CandidateSet.of([1, 3]), SortSpec(), Pagination())
            )
        self.assertEqual([p.id for p in postings], [1, 3])
        self.assertEqual(len(logs.records), 2)

    def test_stops_at_page_size(self) -> None:
        storage = _ProjectionStub([_row(i) for i in range(1, 6)])
        postings = ResultAssembler(storage).assemble(
            CandidateSet.of(range(1, 6)), SortSpec(), Pagination(page=1, page_size=2)
        )
        self.assertEqual([p.id for p in postings], [1, 2])


class TestRowToPosting(unittest.TestCase):
    def test_maps_columns(self) -> None:
        posting = row_to_posting(
            _row(
                7,
                status="paused",
                description="Build things",
                location="Berlin",
                salary_min=50000,
                salary_max=70000,
                posted_at=1714521600,
                is_deleted=1,
            )
        )
        self.assertEqual(posting.id, 7)
        self.assertEqual(posting.status, PostingStatus.PAUSED)
        self.assertEqual(posting.category, "Engineering")
        self.assertEqual(posting.job_type_id, 2)
        self.assertEqual(posting.description, "Build things")
        self.assertEqual(posting.posted_at, datetime(2024, 5, 1, tzinfo=timezone.utc))
        self.assertTrue(posting.is_deleted)

    def test_missing_optional_columns(self) -> None:
        posting = row_to_posting(_row(1))
        self.assertEqual(posting.description, "")
        self.assertIsNone(posting.posted_at)
        self.assertFalse(posting.is_deleted)


if __name__ == "__main__":
    unittest.main()
