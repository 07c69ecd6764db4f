from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class PostingStatus(str, Enum):
    """Lifecycle status of a job posting."""

    DRAFT = "draft"
    OPEN = "open"
    PAUSED = "paused"
    CLOSED = "closed"


class MatchKind(str, Enum):
    """How a relation criterion matches related rows."""

    IDS = "ids"
    KEYWORD = "keyword"


class MatchMode(str, Enum):
    """For id predicates: match any of the ids, or require all of them."""

    ANY = "any"
    ALL = "all"


class SortField(str, Enum):
    POSTED_AT = "posted_at"
    SALARY_MAX = "salary_max"
    TITLE = "title"
    ID = "id"


@dataclass(frozen=True, slots=True)
class MatchPredicate:
    """Predicate evaluated against the rows of one relation.

    Attributes:
        kind: ``IDS`` compares related target ids, ``KEYWORD`` does a
            case-insensitive substring match on the relation's keyword column.
        ids: Target ids for ``IDS`` predicates.
        keyword: Substring for ``KEYWORD`` predicates.
        mode: ``ANY`` or ``ALL`` for ``IDS`` predicates.
    """

    kind: MatchKind
    ids: frozenset[int] = frozenset()
    keyword: str = ""
    mode: MatchMode = MatchMode.ANY

    @classmethod
    def any_of(cls, *ids: int) -> MatchPredicate:
        return cls(kind=MatchKind.IDS, ids=frozenset(ids))

    @classmethod
    def all_of(cls, *ids: int) -> MatchPredicate:
        return cls(kind=MatchKind.IDS, ids=frozenset(ids), mode=MatchMode.ALL)

    @classmethod
    def containing(cls, keyword: str) -> MatchPredicate:
        return cls(kind=MatchKind.KEYWORD, keyword=keyword)


@dataclass(frozen=True, slots=True)
class RelationCriterion:
    """Optional constraint on one many-to-many relation."""

    relation: str
    predicate: MatchPredicate


@dataclass(frozen=True, slots=True)
class SortSpec:
    field: SortField = SortField.POSTED_AT
    descending: bool = True


@dataclass(frozen=True, slots=True)
class Pagination:
    """One-based page window."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """Structured job search request.

    The request is hashable so compiled plans can be cached by value.

    Attributes:
        statuses: Allowed posting statuses. Empty means any status.
        include_deleted: Whether soft-deleted postings are eligible.
        category_ids: Allowed category ids. Empty means any category.
        job_type_ids: Allowed job type ids. Empty means any job type.
        keyword: Optional substring matched against the posting's own text.
        criteria: Optional relation criteria, at most one per relation.
        sort: Result ordering.
        pagination: Result window.
    """

    statuses: frozenset[PostingStatus] = frozenset({PostingStatus.OPEN})
    include_deleted: bool = False
    category_ids: frozenset[int] = frozenset()
    job_type_ids: frozenset[int] = frozenset()
    keyword: Optional[str] = None
    criteria: tuple[RelationCriterion, ...] = ()
    sort: SortSpec = SortSpec()
    pagination: Pagination = Pagination()


@dataclass(frozen=True, slots=True)
class JobPosting:
    """Projected job posting returned by a search.

    Carries the posting's own columns plus the names resolved through the two
    mandatory relations. Optional relations are never attached.
    """

    id: int
    title: str
    company: str
    status: PostingStatus
    category_id: int
    category: str
    job_type_id: int
    job_type: str
    description: str = ""
    location: Optional[str] = None
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    posted_at: Optional[datetime] = None
    is_deleted: bool = False
