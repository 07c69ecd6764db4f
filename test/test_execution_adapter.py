"""Tests for plan execution against a stub storage capability."""

from __future__ import annotations

import itertools
import sys
import threading
import unittest
from pathlib import Path
from typing import Any, Callable

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from JobSearch.core.candidates import CandidateSet
from JobSearch.core.catalog import build_catalog
from JobSearch.core.errors import Cancelled, StorageUnavailable
from JobSearch.core.models import (
    MatchKind,
    MatchMode,
    MatchPredicate,
    RelationCriterion,
    SearchRequest,
)
from JobSearch.core.predicates import ExistsCheck, FilterOperator, MandatoryJoin, PredicateTree
from JobSearch.execution.adapter import ExecutionAdapter, ExecutionTrace
from JobSearch.execution.cancellation import CancellationToken
from JobSearch.planner.compiler import PredicateCompiler
from JobSearch.planner.orderer import PlanOrderer


def _posting(**overrides: Any) -> dict[str, Any]:
    row = {
        "status": "open",
        "is_deleted": False,
        "category_id": 1,
        "job_type_id": 1,
        "title": "Engineer",
        "description": "",
        "company": "Acme",
    }
    row.update(overrides)
    return row


class _StubStorage:
    """In-memory storage capability that records every call.

    Relation rows are kept as ``(job_id, target_id)`` pairs; the same job may
    appear several times, and ``exists_narrow`` returns one id per matching
    row so duplicate handling is exercised.
    """

    def __init__(
        self,
        postings: dict[int, dict[str, Any]],
        rows: dict[str, list[tuple[int, int]]] | None = None,
        names: dict[str, dict[int, str]] | None = None,
    ) -> None:
        self.postings = postings
        self.rows = rows or {}
        self.names = names or {}
        self.calls: list[tuple[str, str]] = []
        self.hooks: dict[str, Callable[[], None]] = {}
        self.leak: set[int] = set()
        self.interrupted = 0
        self._lock = threading.Lock()

    def _called(self, method: str, detail: str) -> None:
        with self._lock:
            self.calls.append((method, detail))
        hook = self.hooks.get(f"{method}:{detail}") or self.hooks.get(method)
        if hook is not None:
            hook()

    def scan_primary(self, filters, within=None):
        self._called("scan_primary", ",".join("|".join(f.columns) for f in filters))
        out = []
        for pid, row in self.postings.items():
            if within is not None and pid not in within:
                continue
            if all(self._matches(row, f) for f in filters):
                out.append(pid)
        return out

    @staticmethod
    def _matches(row, node) -> bool:
        if node.operator is FilterOperator.EQ:
            return row[node.columns[0]] == node.value
        if node.operator is FilterOperator.IN:
            return row[node.columns[0]] in node.value
        needle = str(node.value).lower()
        return any(needle in str(row.get(c) or "").lower() for c in node.columns)

    def join_narrow(self, candidates, relation, join):
        self._called("join_narrow", relation.name)
        return [pid for pid in candidates if self.postings[pid].get(join.primary_column) is not None]

    def exists_narrow(self, candidates, relation, predicate):
        self._called("exists_narrow", relation.name)
        pairs = [(job, target) for job, target in self.rows.get(relation.name, []) if job in candidates]
        if predicate.kind is MatchKind.KEYWORD:
            names = self.names.get(relation.name, {})
            needle = predicate.keyword.lower()
            return [job for job, target in pairs if needle in names.get(target, "").lower()] + sorted(self.leak)
        if predicate.mode is MatchMode.ALL:
            return [
                job
                for job in {job for job, _ in pairs}
                if predicate.ids <= {target for j, target in pairs if j == job}
            ]
        return [job for job, target in pairs if target in predicate.ids] + sorted(self.leak)

    def fetch_projection(self, ids, sort, pagination, relations):
        raise AssertionError("fetch_projection is not used by the adapter")

    def interrupt(self) -> None:
        self.interrupted += 1

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)


def _plan(request: SearchRequest, catalog=None) -> PredicateTree:
    catalog = catalog or build_catalog()
    return PlanOrderer(catalog).order(PredicateCompiler(catalog).compile(request))


def _python_storage() -> _StubStorage:
    return _StubStorage(
        postings={1: _posting(), 2: _posting(), 3: _posting()},
        rows={"skills": [(1, 10), (1, 11), (3, 10), (2, 12)]},
        names={"skills": {10: "Python", 11: "Python 3", 12: "Go"}},
    )


class TestExecutionAdapter(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = build_catalog()

    def test_keyword_existence_returns_each_posting_once(self) -> None:
        storage = _python_storage()
        request = SearchRequest(criteria=(RelationCriterion("skills", MatchPredicate.containing("python")),))

        result = ExecutionAdapter(storage, self.catalog).run(_plan(request), CancellationToken())

        self.assertEqual(result.candidates.ids, frozenset({1, 3}))
        self.assertEqual(list(result.candidates), [1, 3])
        labels = [step.label for step in result.trace.steps]
        self.assertTrue(labels[-1].startswith("ExistsCheck(skills"))
        self.assertEqual([s.after for s in result.trace.steps], [3, 3, 3, 3, 2])

    def test_zero_matching_rows_is_empty_not_error(self) -> None:
        storage = _python_storage()
        request = SearchRequest(criteria=(RelationCriterion("skills", MatchPredicate.containing("rust")),))

        candidates = ExecutionAdapter(storage, self.catalog).execute(_plan(request))

        self.assertEqual(len(candidates), 0)
        self.assertFalse(candidates)

    def test_fail_fast_after_empty(self) -> None:
        storage = _python_storage()
        request = SearchRequest(
            criteria=(
                RelationCriterion("skills", MatchPredicate.any_of(10)),
                RelationCriterion("qualifications", MatchPredicate.any_of(1)),
            )
        )

        result = ExecutionAdapter(storage, self.catalog).run(_plan(request))

        self.assertFalse(result.candidates)
        self.assertEqual(storage.calls[-1], ("exists_narrow", "qualifications"))
        self.assertNotIn(("exists_narrow", "skills"), storage.calls)
        self.assertTrue(result.trace.short_circuited)
        self.assertEqual(result.trace.skipped, 1)

    def test_empty_primary_scan_skips_everything(self) -> None:
        storage = _python_storage()
        request = SearchRequest(category_ids=frozenset({99}))

        result = ExecutionAdapter(storage, self.catalog).run(_plan(request))

        self.assertFalse(result.candidates)
        self.assertEqual(storage.count("join_narrow"), 0)
        self.assertEqual(result.trace.storage_calls, len(storage.calls))

    def test_monotonic_narrowing(self) -> None:
        storage = _StubStorage(
            postings={
                1: _posting(),
                2: _posting(is_deleted=True),
                3: _posting(job_type_id=None),
                4: _posting(),
                5: _posting(status="closed"),
            },
            rows={"skills": [(1, 1), (4, 2)], "tools": [(1, 5), (4, 5), (4, 6)]},
        )
        request = SearchRequest(
            criteria=(
                RelationCriterion("tools", MatchPredicate.any_of(5)),
                RelationCriterion("skills", MatchPredicate.any_of(1)),
            )
        )

        result = ExecutionAdapter(storage, self.catalog).run(_plan(request))

        self.assertEqual(result.candidates.ids, frozenset({1}))
        for step in result.trace.steps:
            if step.before is not None:
                self.assertLessEqual(step.after, step.before)

    def test_misbehaving_storage_never_widens(self) -> None:
        storage = _python_storage()
        storage.postings[2]["status"] = "closed"
        storage.leak = {2, 42}
        request = SearchRequest(criteria=(RelationCriterion("skills", MatchPredicate.containing("python")),))

        candidates = ExecutionAdapter(storage, self.catalog).execute(_plan(request))

        self.assertEqual(candidates.ids, frozenset({1, 3}))

    def test_absent_relation_does_not_filter(self) -> None:
        storage = _StubStorage(
            postings={1: _posting(), 2: _posting(), 3: _posting()},
            rows={"tools": [(1, 1)]},
        )
        candidates = ExecutionAdapter(storage, self.catalog).execute(_plan(SearchRequest()))
        self.assertEqual(candidates.ids, frozenset({1, 2, 3}))
        self.assertEqual(storage.count("exists_narrow"), 0)

    def test_all_mode_requires_every_id(self) -> None:
        storage = _StubStorage(
            postings={1: _posting(), 2: _posting()},
            rows={"skills": [(1, 1), (1, 2), (2, 1)]},
        )
        request = SearchRequest(criteria=(RelationCriterion("skills", MatchPredicate.all_of(1, 2)),))
        candidates = ExecutionAdapter(storage, self.catalog).execute(_plan(request))
        self.assertEqual(candidates.ids, frozenset({1}))

    def test_order_invariance(self) -> None:
        storage = _StubStorage(
            postings={
                1: _posting(),
                2: _posting(),
                3: _posting(is_deleted=True),
                4: _posting(category_id=None),
                5: _posting(),
            },
            rows={
                "skills": [(1, 1), (2, 1), (3, 1), (4, 1)],
                "tools": [(1, 7), (1, 8), (3, 7), (4, 7), (5, 7)],
            },
        )
        request = SearchRequest(
            criteria=(
                RelationCriterion("skills", MatchPredicate.any_of(1)),
                RelationCriterion("tools", MatchPredicate.any_of(7)),
            )
        )
        nodes = PredicateCompiler(self.catalog).compile(request).nodes
        adapter = ExecutionAdapter(storage, self.catalog)

        expected = adapter.execute(PredicateTree(nodes))
        self.assertEqual(expected.ids, frozenset({1}))
        for permutation in itertools.permutations(nodes):
            with self.subTest(order=[n.describe() for n in permutation]):
                self.assertEqual(adapter.execute(PredicateTree(permutation)), expected)

    def test_tree_starting_with_join_scans_all_first(self) -> None:
        storage = _StubStorage(postings={1: _posting(), 2: _posting(category_id=None)})
        tree = _plan(SearchRequest(statuses=frozenset(), include_deleted=True))

        candidates = ExecutionAdapter(storage, self.catalog).execute(tree)

        self.assertEqual(candidates.ids, frozenset({1}))
        self.assertEqual(storage.calls[0], ("scan_primary", ""))

    def test_empty_tree_returns_every_posting(self) -> None:
        storage = _StubStorage(postings={1: _posting(), 2: _posting(status="closed")})
        candidates = ExecutionAdapter(storage, self.catalog).execute(PredicateTree())
        self.assertEqual(candidates.ids, frozenset({1, 2}))
        self.assertEqual(storage.count("scan_primary"), 1)

    def test_narrowing_steps_require_a_candidate_set(self) -> None:
        storage = _python_storage()
        adapter = ExecutionAdapter(storage, self.catalog)
        category = self.catalog.describe("category")
        join = MandatoryJoin(relation="category", join=category.join)
        check = ExistsCheck(relation="skills", predicate=MatchPredicate.any_of(10))

        with self.assertRaises(RuntimeError):
            adapter._apply(join, None, CancellationToken(), ExecutionTrace())
        with self.assertRaises(TypeError):
            adapter._apply_concurrently([join, check], CandidateSet.of([1]), CancellationToken(), ExecutionTrace())
        self.assertEqual(storage.calls, [])


class TestExecutionCancellation(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = build_catalog()
        self.request = SearchRequest(
            criteria=(
                RelationCriterion("skills", MatchPredicate.containing("python")),
                RelationCriterion("tools", MatchPredicate.any_of(1)),
            )
        )

    def test_cancel_after_mandatory_join_raises(self) -> None:
        storage = _python_storage()
        token = CancellationToken()
        storage.hooks["join_narrow:job_type"] = token.cancel

        with self.assertRaises(Cancelled):
            ExecutionAdapter(storage, self.catalog).run(_plan(self.request), token)

        self.assertEqual(storage.count("exists_narrow"), 0)
        self.assertEqual(storage.interrupted, 1)

    def test_already_cancelled_token_makes_no_calls(self) -> None:
        storage = _python_storage()
        token = CancellationToken()
        token.cancel()

        with self.assertRaises(Cancelled):
            ExecutionAdapter(storage, self.catalog).execute(_plan(self.request), token)
        self.assertEqual(storage.calls, [])

    def test_storage_failure_after_cancel_is_cancelled(self) -> None:
        storage = _python_storage()
        token = CancellationToken()

        def _interrupted() -> None:
            token.cancel(reason="interrupted")
            raise StorageUnavailable("interrupted")

        storage.hooks["exists_narrow"] = _interrupted

        with self.assertRaisesRegex(Cancelled, "interrupted"):
            ExecutionAdapter(storage, self.catalog).execute(_plan(self.request), token)

    def test_storage_failure_propagates(self) -> None:
        storage = _python_storage()

        def _fail() -> None:
            raise StorageUnavailable("disk I/O error")

        storage.hooks["join_narrow"] = _fail

        with self.assertRaises(StorageUnavailable):
            ExecutionAdapter(storage, self.catalog).execute(_plan(self.request))
        self.assertEqual(storage.count("exists_narrow"), 0)

    def test_interrupt_callback_removed_after_run(self) -> None:
        storage = _python_storage()
        token = CancellationToken()
        ExecutionAdapter(storage, self.catalog).execute(_plan(self.request), token)
        token.cancel()
        self.assertEqual(storage.interrupted, 0)


class TestParallelExistsChecks(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = build_catalog({"skills": 0.3, "tools": 0.3, "career_paths": 0.3})
        self.storage = _StubStorage(
            postings={1: _posting(), 2: _posting(), 3: _posting()},
            rows={
                "skills": [(1, 1), (2, 1), (3, 1)],
                "tools": [(1, 2), (2, 2)],
                "career_paths": [(2, 3), (3, 3)],
            },
        )
        self.request = SearchRequest(
            criteria=(
                RelationCriterion("skills", MatchPredicate.any_of(1)),
                RelationCriterion("tools", MatchPredicate.any_of(2)),
                RelationCriterion("career_paths", MatchPredicate.any_of(3)),
            )
        )

    def test_same_result_as_sequential(self) -> None:
        plan = _plan(self.request, self.catalog)
        sequential = ExecutionAdapter(self.storage, self.catalog).execute(plan)
        parallel = ExecutionAdapter(self.storage, self.catalog, parallel_exists=True, max_workers=3).run(plan)

        self.assertEqual(parallel.candidates, sequential)
        self.assertEqual(parallel.candidates.ids, frozenset({2}))
        self.assertIn(" & ", parallel.trace.steps[-1].label)

    def test_group_evaluated_against_same_candidates(self) -> None:
        seen: list[frozenset[int]] = []
        original = self.storage.exists_narrow

        def _recording(candidates, relation, predicate):
            seen.append(frozenset(candidates))
            return original(candidates, relation, predicate)

        self.storage.exists_narrow = _recording  # type: ignore[method-assign]
        ExecutionAdapter(self.storage, self.catalog, parallel_exists=True).execute(_plan(self.request, self.catalog))

        self.assertEqual(len(seen), 3)
        self.assertEqual(len(set(seen)), 1)

    def test_different_selectivity_stays_sequential(self) -> None:
        catalog = build_catalog()
        result = ExecutionAdapter(self.storage, catalog, parallel_exists=True).run(_plan(self.request, catalog))
        self.assertFalse(any(" & " in step.label for step in result.trace.steps))
        self.assertEqual(result.candidates.ids, frozenset({2}))


if __name__ == "__main__":
    unittest.main()
