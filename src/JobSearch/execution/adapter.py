"""Plan execution against a storage capability.

The adapter walks an ordered ``PredicateTree`` one node at a time. Each node
narrows the candidate set produced by the previous ones; the set is
intersected after every storage call so it can only shrink, and once it is
empty the remaining nodes are skipped without touching storage.
"""

from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import AbstractSet, Callable, Optional, Sequence

from JobSearch.core.candidates import CandidateSet
from JobSearch.core.catalog import RelationCatalog
from JobSearch.core.errors import Cancelled, StorageUnavailable
from JobSearch.core.predicates import (
    ExistsCheck,
    MandatoryJoin,
    PredicateNode,
    PredicateTree,
    PrimaryFilter,
)
from JobSearch.execution.cancellation import CancellationToken
from JobSearch.execution.storage import StorageEngine
from JobSearch.utils.log import log


@dataclass(frozen=True, slots=True)
class NodeTrace:
    """Outcome of one plan step.

    ``before`` is None for the step that established the initial set.
    """

    label: str
    before: Optional[int]
    after: int
    elapsed_ms: float


@dataclass(slots=True)
class ExecutionTrace:
    steps: list[NodeTrace] = field(default_factory=list)
    storage_calls: int = 0
    short_circuited: bool = False
    skipped: int = 0

    def describe(self) -> list[str]:
        lines = []
        for step in self.steps:
            before = "*" if step.before is None else str(step.before)
            lines.append(f"{step.label}: {before} -> {step.after} ({step.elapsed_ms:.1f} ms)")
        if self.short_circuited:
            lines.append(f"short-circuited, {self.skipped} node(s) skipped")
        return lines


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    candidates: CandidateSet
    trace: ExecutionTrace


@dataclass(slots=True)
class ExecutionAdapter:
    """Drives a storage capability through an ordered plan.

    Attributes:
        storage: Storage capability.
        catalog: Catalog used to resolve relation descriptors.
        parallel_exists: Evaluate adjacent existence checks with equal
            selectivity hints concurrently against the same candidate set.
        max_workers: Thread pool size for concurrent existence checks.
    """

    storage: StorageEngine
    catalog: RelationCatalog
    parallel_exists: bool = False
    max_workers: int = 4

    def execute(self, tree: PredicateTree, token: CancellationToken | None = None) -> CandidateSet:
        """Execute ``tree`` and return the surviving ids.

        Raises:
            Cancelled: If ``token`` is cancelled before the plan completes.
            StorageUnavailable: If the storage capability fails.
        """
        return self.run(tree, token).candidates

    def run(self, tree: PredicateTree, token: CancellationToken | None = None) -> ExecutionResult:
        """Execute ``tree`` and return the surviving ids with a step trace."""
        token = token or CancellationToken()
        trace = ExecutionTrace()

        interrupt = getattr(self.storage, "interrupt", None)
        if callable(interrupt):
            token.on_cancel(interrupt)
        try:
            candidates = self._run_groups(tree, token, trace)
        finally:
            if callable(interrupt):
                token.remove_callback(interrupt)

        return ExecutionResult(candidates=candidates, trace=trace)

    def _run_groups(self, tree: PredicateTree, token: CancellationToken, trace: ExecutionTrace) -> CandidateSet:
        groups = self._group(tree.nodes)
        candidates: CandidateSet | None = None

        for index, group in enumerate(groups):
            token.raise_if_cancelled()

            if candidates is None and not isinstance(group[0], PrimaryFilter):
                candidates = self._step(
                    "scan(all)",
                    None,
                    lambda: self.storage.scan_primary((), None),
                    token,
                    trace,
                )
                if not candidates:
                    return self._short_circuit(groups[index:], trace)
                token.raise_if_cancelled()

            if len(group) == 1:
                candidates = self._apply(group[0], candidates, token, trace)
            else:
                if candidates is None:
                    raise RuntimeError("Concurrent group needs an initial candidate set")
                candidates = self._apply_concurrently(group, candidates, token, trace)

            if not candidates:
                return self._short_circuit(groups[index + 1 :], trace)

        if candidates is None:
            candidates = self._step("scan(all)", None, lambda: self.storage.scan_primary((), None), token, trace)
        return candidates

    def _apply(
        self,
        node: PredicateNode,
        candidates: CandidateSet | None,
        token: CancellationToken,
        trace: ExecutionTrace,
    ) -> CandidateSet:
        label = node.describe()
        if isinstance(node, PrimaryFilter):
            within = candidates.ids if candidates is not None else None
            return self._step(label, candidates, lambda: self.storage.scan_primary((node,), within), token, trace)

        if candidates is None:
            raise RuntimeError(f"{label} needs an initial candidate set")
        ids = candidates.ids
        if isinstance(node, MandatoryJoin):
            descriptor = self.catalog.describe(node.relation)
            return self._step(label, candidates, lambda: self.storage.join_narrow(ids, descriptor, node.join), token, trace)
        if isinstance(node, ExistsCheck):
            descriptor = self.catalog.describe(node.relation)
            return self._step(
                label,
                candidates,
                lambda: self.storage.exists_narrow(ids, descriptor, node.predicate),
                token,
                trace,
            )
        raise TypeError(f"Unsupported predicate node: {type(node).__name__}")

    def _apply_concurrently(
        self,
        group: Sequence[PredicateNode],
        candidates: CandidateSet,
        token: CancellationToken,
        trace: ExecutionTrace,
    ) -> CandidateSet:
        """Evaluate independent existence checks against the same candidate set."""
        ids = candidates.ids
        label = " & ".join(node.describe() for node in group)
        started = time.perf_counter()
        result = candidates

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(group))) as executor:
            pending: set[Future[set[int]]] = set()
            for node in group:
                if not isinstance(node, ExistsCheck):
                    raise TypeError(f"Cannot run {type(node).__name__} concurrently")
                descriptor = self.catalog.describe(node.relation)
                pending.add(executor.submit(self.storage.exists_narrow, ids, descriptor, node.predicate))
            trace.storage_calls += len(pending)

            try:
                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        result = result.narrow(self._guard(future.result, token))
                    if not result:
                        break
            finally:
                for future in pending:
                    future.cancel()

        token.raise_if_cancelled()
        self._record(trace, label, len(candidates), len(result), started)
        return result

    def _step(
        self,
        label: str,
        candidates: CandidateSet | None,
        call: Callable[[], AbstractSet[int]],
        token: CancellationToken,
        trace: ExecutionTrace,
    ) -> CandidateSet:
        started = time.perf_counter()
        trace.storage_calls += 1
        surviving = self._guard(call, token)
        # Results that arrive after cancellation are abandoned.
        token.raise_if_cancelled()

        if candidates is None:
            narrowed = CandidateSet.of(surviving)
        else:
            narrowed = candidates.narrow(surviving)
        self._record(trace, label, None if candidates is None else len(candidates), len(narrowed), started)
        return narrowed

    @staticmethod
    def _guard(call: Callable[[], AbstractSet[int]], token: CancellationToken) -> AbstractSet[int]:
        try:
            return call()
        except StorageUnavailable as error:
            if token.cancelled:
                raise Cancelled(f"Search {token.reason}") from error
            raise

    @staticmethod
    def _record(trace: ExecutionTrace, label: str, before: int | None, after: int, started: float) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000
        trace.steps.append(NodeTrace(label=label, before=before, after=after, elapsed_ms=elapsed_ms))
        log.debug("%s: %s -> %d (%.1f ms)", label, "*" if before is None else before, after, elapsed_ms)

    @staticmethod
    def _short_circuit(remaining: Sequence[Sequence[PredicateNode]], trace: ExecutionTrace) -> CandidateSet:
        skipped = sum(len(group) for group in remaining)
        trace.short_circuited = True
        trace.skipped = skipped
        if skipped:
            log.info("Candidate set empty, skipping %d remaining node(s)", skipped)
        return CandidateSet()

    def _group(self, nodes: Sequence[PredicateNode]) -> list[list[PredicateNode]]:
        """Split nodes into sequential steps.

        Without ``parallel_exists`` every node is its own step. Otherwise
        adjacent existence checks with equal selectivity share one step.
        """
        groups: list[list[PredicateNode]] = []
        for node in nodes:
            if (
                self.parallel_exists
                and isinstance(node, ExistsCheck)
                and groups
                and isinstance(groups[-1][0], ExistsCheck)
                and self.catalog.selectivity(groups[-1][0].relation) == self.catalog.selectivity(node.relation)
            ):
                groups[-1].append(node)
                continue
            groups.append([node])
        return groups
