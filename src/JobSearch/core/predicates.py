"""Predicate tree for a compiled job search.

A plan is an ordered tuple of nodes, logically ANDed. The node set is closed:
``PrimaryFilter`` touches only the posting's own columns, ``MandatoryJoin``
resolves a one-to-one relation, and ``ExistsCheck`` keeps a posting when at
least one related row matches. No node adds output columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Union

from JobSearch.core.catalog import JoinKey
from JobSearch.core.models import MatchKind, MatchPredicate


class FilterOperator(str, Enum):
    EQ = "eq"
    IN = "in"
    CONTAINS = "contains"


# Relative evaluation cost of primary filters; indexed equality is cheapest.
OPERATOR_COST: dict[FilterOperator, int] = {
    FilterOperator.EQ: 0,
    FilterOperator.IN: 1,
    FilterOperator.CONTAINS: 2,
}


@dataclass(frozen=True, slots=True)
class PrimaryFilter:
    """Filter on the primary entity's own columns.

    ``EQ`` and ``IN`` use exactly one column. ``CONTAINS`` matches when any of
    the listed columns contains ``value`` (case-insensitive).
    """

    columns: tuple[str, ...]
    operator: FilterOperator
    value: object

    def describe(self) -> str:
        target = "|".join(self.columns)
        if isinstance(self.value, frozenset):
            shown = sorted(str(v) for v in self.value)
        else:
            shown = self.value
        return f"PrimaryFilter({target} {self.operator.value} {shown!r})"


@dataclass(frozen=True, slots=True)
class MandatoryJoin:
    """One-to-one join that every result must resolve."""

    relation: str
    join: JoinKey

    def describe(self) -> str:
        return f"MandatoryJoin({self.relation} on {self.join.primary_column}={self.join.target_column})"


@dataclass(frozen=True, slots=True)
class ExistsCheck:
    """Existence test against an optional many-to-many relation."""

    relation: str
    predicate: MatchPredicate

    def describe(self) -> str:
        p = self.predicate
        if p.kind is MatchKind.KEYWORD:
            detail = f"keyword~{p.keyword!r}"
        else:
            detail = f"{p.mode.value} ids={sorted(p.ids)}"
        return f"ExistsCheck({self.relation} {detail})"


PredicateNode = Union[PrimaryFilter, MandatoryJoin, ExistsCheck]


@dataclass(frozen=True, slots=True)
class PredicateTree:
    """Immutable, ordered conjunction of predicate nodes."""

    nodes: tuple[PredicateNode, ...] = ()

    def __iter__(self) -> Iterator[PredicateNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def describe(self) -> list[str]:
        return [f"{idx}. {node.describe()}" for idx, node in enumerate(self.nodes, start=1)]
