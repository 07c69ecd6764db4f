"""Search request compiler.

Compiles a structured ``SearchRequest`` into a ``PredicateTree``. All
validation against the relation catalog happens here, before any storage
access, so a malformed request never costs a query.

Node emission order (before planning):

- one ``PrimaryFilter`` per mandatory scalar filter, in the fixed order
  status, deletion flag, category, job type, keyword;
- one ``MandatoryJoin`` per mandatory relation, in catalog declaration order;
- one ``ExistsCheck`` per relation criterion, in request order.

Relations the request does not mention produce no node.
"""

from __future__ import annotations

from dataclasses import dataclass

from JobSearch.core.catalog import RelationCatalog
from JobSearch.core.errors import InvalidCriterion
from JobSearch.core.models import MatchKind, MatchPredicate, RelationCriterion, SearchRequest
from JobSearch.core.predicates import (
    ExistsCheck,
    FilterOperator,
    MandatoryJoin,
    PredicateNode,
    PredicateTree,
    PrimaryFilter,
)
from JobSearch.utils.log import log


@dataclass(frozen=True, slots=True)
class PredicateCompiler:
    """Stateless compiler bound to a read-only catalog."""

    catalog: RelationCatalog

    def compile(self, request: SearchRequest) -> PredicateTree:
        """Compile ``request`` into an unordered predicate tree.

        Args:
            request: Search request.

        Returns:
            Predicate tree in emission order.

        Raises:
            UnknownRelation: If a criterion names an unregistered relation.
            InvalidCriterion: If a filter or criterion is invalid.
        """
        nodes: list[PredicateNode] = []
        nodes.extend(self._primary_filters(request))
        nodes.extend(
            MandatoryJoin(relation=descriptor.name, join=descriptor.join)
            for descriptor in self.catalog.mandatory()
        )
        nodes.extend(self._exists_checks(request.criteria))

        tree = PredicateTree(tuple(nodes))
        log.debug("Compiled request into %d nodes", len(tree))
        return tree

    def _primary_filters(self, request: SearchRequest) -> list[PrimaryFilter]:
        primary = self.catalog.primary
        filters: list[PrimaryFilter] = []

        if request.statuses:
            filters.append(
                PrimaryFilter(
                    columns=("status",),
                    operator=FilterOperator.IN,
                    value=frozenset(status.value for status in request.statuses),
                )
            )
        if not request.include_deleted:
            filters.append(PrimaryFilter(columns=("is_deleted",), operator=FilterOperator.EQ, value=False))
        if request.category_ids:
            filters.append(
                PrimaryFilter(columns=("category_id",), operator=FilterOperator.IN, value=request.category_ids)
            )
        if request.job_type_ids:
            filters.append(
                PrimaryFilter(columns=("job_type_id",), operator=FilterOperator.IN, value=request.job_type_ids)
            )
        if request.keyword is not None:
            keyword = request.keyword.strip()
            if not keyword:
                raise InvalidCriterion("keyword must not be blank")
            filters.append(
                PrimaryFilter(columns=primary.keyword_columns, operator=FilterOperator.CONTAINS, value=keyword)
            )

        for node in filters:
            unknown = set(node.columns) - primary.filter_columns - set(primary.keyword_columns)
            if unknown:
                raise InvalidCriterion(f"Unknown primary column(s): {sorted(unknown)}")
        return filters

    def _exists_checks(self, criteria: tuple[RelationCriterion, ...]) -> list[ExistsCheck]:
        checks: list[ExistsCheck] = []
        seen: set[str] = set()
        for criterion in criteria:
            descriptor = self.catalog.describe(criterion.relation)
            if descriptor.mandatory:
                raise InvalidCriterion(
                    f"Relation {descriptor.name} is mandatory one-to-one and cannot be an existence criterion"
                )
            if descriptor.name in seen:
                raise InvalidCriterion(f"Duplicate criterion for relation: {descriptor.name}")
            seen.add(descriptor.name)

            predicate = self._check_predicate(criterion)
            if predicate.kind is MatchKind.KEYWORD and not descriptor.keyword_eligible:
                raise InvalidCriterion(f"Relation {descriptor.name} does not support keyword matching")
            checks.append(ExistsCheck(relation=descriptor.name, predicate=predicate))
        return checks

    @staticmethod
    def _check_predicate(criterion: RelationCriterion) -> MatchPredicate:
        predicate = criterion.predicate
        if predicate.kind is MatchKind.IDS:
            if not predicate.ids:
                raise InvalidCriterion(f"Criterion for {criterion.relation} has no ids")
            if predicate.keyword:
                raise InvalidCriterion(f"Criterion for {criterion.relation} mixes ids and keyword")
            return predicate

        keyword = predicate.keyword.strip()
        if not keyword:
            raise InvalidCriterion(f"Criterion for {criterion.relation} has a blank keyword")
        if predicate.ids:
            raise InvalidCriterion(f"Criterion for {criterion.relation} mixes ids and keyword")
        return MatchPredicate(kind=MatchKind.KEYWORD, keyword=keyword)
