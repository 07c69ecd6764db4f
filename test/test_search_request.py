"""Tests for parsing search requests from mappings."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from JobSearch.config import parse_search_request
from JobSearch.config.search import SearchConfig
from JobSearch.core.models import (
    MatchPredicate,
    Pagination,
    PostingStatus,
    RelationCriterion,
    SearchRequest,
    SortField,
    SortSpec,
)

_SEARCH = SearchConfig(
    default_page_size=20,
    max_page_size=50,
    timeout_seconds=0,
    parallel_exists=False,
    max_workers=4,
    plan_cache_size=16,
)


class TestParseSearchRequest(unittest.TestCase):
    def test_empty_mapping_gives_defaults(self) -> None:
        self.assertEqual(parse_search_request({}, _SEARCH), SearchRequest())

    def test_full_request(self) -> None:
        raw = {
            "status": ["open", "Paused"],
            "include_deleted": True,
            "category": [1, 2],
            "job_type": 3,
            "keyword": "engineer",
            "criteria": [
                {"relation": "skills", "ids": [1, 2], "mode": "all"},
                {"relation": "tools", "ids": 5},
                {"relation": "personalities", "keyword": "curious"},
            ],
            "sort": "-salary_max",
            "page": 2,
            "page_size": 10,
        }
        request = parse_search_request(raw, _SEARCH)

        self.assertEqual(request.statuses, frozenset({PostingStatus.OPEN, PostingStatus.PAUSED}))
        self.assertTrue(request.include_deleted)
        self.assertEqual(request.category_ids, frozenset({1, 2}))
        self.assertEqual(request.job_type_ids, frozenset({3}))
        self.assertEqual(request.keyword, "engineer")
        self.assertEqual(
            request.criteria,
            (
                RelationCriterion("skills", MatchPredicate.all_of(1, 2)),
                RelationCriterion("tools", MatchPredicate.any_of(5)),
                RelationCriterion("personalities", MatchPredicate.containing("curious")),
            ),
        )
        self.assertEqual(request.sort, SortSpec(field=SortField.SALARY_MAX, descending=True))
        self.assertEqual(request.pagination, Pagination(page=2, page_size=10))

    def test_any_status_lifts_filter(self) -> None:
        self.assertEqual(parse_search_request({"status": "any"}, _SEARCH).statuses, frozenset())
        self.assertEqual(parse_search_request({"status": []}, _SEARCH).statuses, frozenset())

    def test_unknown_status(self) -> None:
        with self.assertRaisesRegex(ValueError, "status"):
            parse_search_request({"status": ["archived"]}, _SEARCH)

    def test_sort_forms(self) -> None:
        self.assertEqual(parse_search_request({"sort": "title"}, _SEARCH).sort, SortSpec(SortField.TITLE, False))
        self.assertEqual(
            parse_search_request({"sort": {"field": "id", "descending": False}}, _SEARCH).sort,
            SortSpec(SortField.ID, False),
        )
        with self.assertRaisesRegex(ValueError, "sort field"):
            parse_search_request({"sort": "company"}, _SEARCH)

    def test_page_size_limits(self) -> None:
        with self.assertRaisesRegex(ValueError, "page_size"):
            parse_search_request({"page_size": 51}, _SEARCH)
        with self.assertRaisesRegex(ValueError, "page_size"):
            parse_search_request({"page_size": 0}, _SEARCH)
        with self.assertRaisesRegex(ValueError, "page"):
            parse_search_request({"page": 0}, _SEARCH)

    def test_criterion_needs_exactly_one_matcher(self) -> None:
        with self.assertRaisesRegex(ValueError, "criteria\\[0\\]"):
            parse_search_request({"criteria": [{"relation": "skills"}]}, _SEARCH)
        with self.assertRaisesRegex(ValueError, "criteria\\[0\\]"):
            parse_search_request({"criteria": [{"relation": "skills", "ids": [1], "keyword": "x"}]}, _SEARCH)

    def test_criterion_type_errors(self) -> None:
        with self.assertRaisesRegex(TypeError, "criteria\\[0\\]\\.ids"):
            parse_search_request({"criteria": [{"relation": "skills", "ids": ["one"]}]}, _SEARCH)
        with self.assertRaisesRegex(ValueError, "criteria\\[0\\]\\.relation"):
            parse_search_request({"criteria": [{"ids": [1]}]}, _SEARCH)
        with self.assertRaisesRegex(ValueError, "mode"):
            parse_search_request({"criteria": [{"relation": "skills", "ids": [1], "mode": "most"}]}, _SEARCH)

    def test_relation_names_are_not_checked_here(self) -> None:
        request = parse_search_request({"criteria": [{"relation": "hobbies", "keyword": "chess"}]}, _SEARCH)
        self.assertEqual(request.criteria[0].relation, "hobbies")

    def test_parsed_request_is_hashable(self) -> None:
        raw = {"criteria": [{"relation": "skills", "ids": [2, 1]}], "category": [2, 1]}
        self.assertEqual(hash(parse_search_request(raw, _SEARCH)), hash(parse_search_request(raw, _SEARCH)))


if __name__ == "__main__":
    unittest.main()
