"""Plan ordering.

Each existence check runs only against the candidates left by earlier nodes,
so cheap primary filters go first, mandatory joins next and existence checks
last, rarest relation first. Ordering changes cost, never the result.
"""

from __future__ import annotations

from dataclasses import dataclass

from JobSearch.core.catalog import RelationCatalog
from JobSearch.core.predicates import (
    OPERATOR_COST,
    ExistsCheck,
    MandatoryJoin,
    PredicateNode,
    PredicateTree,
    PrimaryFilter,
)

_PHASE_PRIMARY = 0
_PHASE_JOIN = 1
_PHASE_EXISTS = 2


@dataclass(frozen=True, slots=True)
class PlanOrderer:
    """Reorders predicate trees using the catalog's selectivity hints."""

    catalog: RelationCatalog

    def order(self, tree: PredicateTree) -> PredicateTree:
        """Return a permutation of ``tree`` in evaluation order.

        The sort is stable: nodes with equal keys keep their original order.
        """
        return PredicateTree(tuple(sorted(tree.nodes, key=self._sort_key)))

    def _sort_key(self, node: PredicateNode) -> tuple[int, float]:
        if isinstance(node, PrimaryFilter):
            return (_PHASE_PRIMARY, float(OPERATOR_COST[node.operator]))
        if isinstance(node, MandatoryJoin):
            return (_PHASE_JOIN, 0.0)
        if isinstance(node, ExistsCheck):
            return (_PHASE_EXISTS, self.catalog.selectivity(node.relation))
        raise TypeError(f"Unsupported predicate node: {type(node).__name__}")
