"""Error hierarchy for JobSearch.

Compile-time errors are raised before any storage access. Execution-time
errors abort the running plan; callers never receive a partial result.
"""

from __future__ import annotations


class JobSearchError(Exception):
    """Base class for all JobSearch errors."""


class CompileError(JobSearchError):
    """A search request cannot be compiled into a plan."""


class InvalidCriterion(CompileError):
    """A filter or relation criterion is malformed or misplaced.

    Raised for cardinality mismatches (a mandatory relation used as an
    existence criterion), duplicate criteria for one relation, keyword
    predicates on relations without a keyword attribute, and empty values.
    """


class UnknownRelation(InvalidCriterion):
    """A relation name is not registered in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown relation: {name}")
        self.name = name


class Cancelled(JobSearchError):
    """Execution was cancelled or timed out before producing a full result.

    Distinct from an empty match set.
    """


class StorageUnavailable(JobSearchError):
    """The storage capability failed to answer a plan step."""
