"""Storage capability consumed by the execution layer."""

from __future__ import annotations

from typing import AbstractSet, Any, Iterable, Mapping, Optional, Protocol, Sequence

from JobSearch.core.catalog import JoinKey, RelationDescriptor
from JobSearch.core.models import MatchPredicate, Pagination, SortSpec
from JobSearch.core.predicates import PrimaryFilter


class StorageEngine(Protocol):
    """Narrowing operations over posting ids.

    Every method returns a subset of the ids it was given (or of the whole
    table for an unrestricted scan) and reports failures as
    ``StorageUnavailable``. Implementations may also expose ``interrupt()``
    to abort an in-flight call; the execution adapter wires it to
    cancellation when present.
    """

    def scan_primary(
        self,
        filters: Sequence[PrimaryFilter],
        within: Optional[AbstractSet[int]] = None,
    ) -> set[int]:
        """Return ids of postings matching all ``filters``, optionally within ``within``."""
        raise NotImplementedError

    def join_narrow(
        self,
        candidates: AbstractSet[int],
        relation: RelationDescriptor,
        join: JoinKey,
    ) -> set[int]:
        """Keep candidates whose mandatory relation resolves."""
        raise NotImplementedError

    def exists_narrow(
        self,
        candidates: AbstractSet[int],
        relation: RelationDescriptor,
        predicate: MatchPredicate,
    ) -> set[int]:
        """Keep candidates with at least one related row matching ``predicate``."""
        raise NotImplementedError

    def fetch_projection(
        self,
        ids: AbstractSet[int],
        sort: SortSpec,
        pagination: Pagination,
        relations: Sequence[RelationDescriptor],
    ) -> Iterable[Mapping[str, Any]]:
        """Yield one projected row per id in the requested page, in sort order.

        Each row also carries the ``projected_as`` attribute of every one of
        ``relations``.
        """
        raise NotImplementedError
