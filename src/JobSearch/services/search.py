"""Search service: the entry point that runs a request end to end."""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterator

from JobSearch.core.catalog import RelationCatalog
from JobSearch.core.models import JobPosting, SearchRequest
from JobSearch.core.predicates import PredicateTree
from JobSearch.execution.adapter import ExecutionAdapter, ExecutionTrace
from JobSearch.execution.assembler import ResultAssembler
from JobSearch.execution.cancellation import CancellationToken
from JobSearch.execution.storage import StorageEngine
from JobSearch.planner.compiler import PredicateCompiler
from JobSearch.planner.orderer import PlanOrderer
from JobSearch.utils.log import log


@dataclass(slots=True)
class SearchResult:
    """Outcome of one search.

    Attributes:
        postings: Lazy, single-pass page of postings.
        total: Number of postings matching the request across all pages.
        plan: Ordered plan that was executed.
        trace: Per-step narrowing trace.
    """

    postings: Iterator[JobPosting]
    total: int
    plan: PredicateTree
    trace: ExecutionTrace


class PlanCache:
    """Bounded LRU cache of ordered plans keyed by request."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self._plans: OrderedDict[SearchRequest, PredicateTree] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, request: SearchRequest) -> PredicateTree | None:
        with self._lock:
            plan = self._plans.get(request)
            if plan is not None:
                self._plans.move_to_end(request)
            return plan

    def put(self, request: SearchRequest, plan: PredicateTree) -> None:
        if self.max_size <= 0:
            return
        with self._lock:
            self._plans[request] = plan
            self._plans.move_to_end(request)
            while len(self._plans) > self.max_size:
                self._plans.popitem(last=False)

    def __len__(self) -> int:
        return len(self._plans)


@dataclass(slots=True)
class JobSearchService:
    """Compiles, orders, executes and assembles job searches."""

    catalog: RelationCatalog
    storage: StorageEngine | None = None
    parallel_exists: bool = False
    max_workers: int = 4
    default_timeout: float | None = None
    plan_cache: PlanCache = field(default_factory=lambda: PlanCache(128))

    def explain(self, request: SearchRequest) -> PredicateTree:
        """Compile and order ``request`` without touching storage.

        Raises:
            CompileError: If the request is invalid.
        """
        cached = self.plan_cache.get(request)
        if cached is not None:
            return cached
        tree = PredicateCompiler(self.catalog).compile(request)
        plan = PlanOrderer(self.catalog).order(tree)
        self.plan_cache.put(request, plan)
        return plan

    def search(
        self,
        request: SearchRequest,
        *,
        timeout: float | None = None,
        token: CancellationToken | None = None,
    ) -> SearchResult:
        """Run ``request`` and return the requested page.

        Args:
            request: Search request.
            timeout: Seconds before the search is cancelled. Falls back to
                ``default_timeout``; ignored when ``token`` is given.
            token: Caller-owned cancellation token.

        Returns:
            The search result.

        Raises:
            CompileError: If the request is invalid; no storage call is made.
            Cancelled: If the search is cancelled or times out.
            StorageUnavailable: If storage fails.
        """
        plan = self.explain(request)
        if self.storage is None:
            raise RuntimeError("Search service has no storage attached")

        owned = token is None
        if token is None:
            token = CancellationToken(timeout if timeout is not None else self.default_timeout)
        try:
            adapter = ExecutionAdapter(
                storage=self.storage,
                catalog=self.catalog,
                parallel_exists=self.parallel_exists,
                max_workers=self.max_workers,
            )
            execution = adapter.run(plan, token)
            token.raise_if_cancelled()
        finally:
            if owned:
                token.close()

        candidates = execution.candidates
        log.info(
            "Search matched %d postings in %d storage calls (page=%d size=%d)",
            len(candidates),
            execution.trace.storage_calls,
            request.pagination.page,
            request.pagination.page_size,
        )
        assembler = ResultAssembler(self.storage, self.catalog.mandatory())
        postings = assembler.assemble(candidates, request.sort, request.pagination)
        return SearchResult(postings=postings, total=len(candidates), plan=plan, trace=execution.trace)
