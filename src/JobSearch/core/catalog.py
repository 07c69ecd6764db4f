"""Relation catalog for the job posting search.

The catalog is static configuration: it describes the primary entity's own
columns and every relation a request may reference. It is built once at
process start by :func:`build_catalog` and is read-only afterwards, so it can
be shared across threads without locking.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from JobSearch.core.errors import UnknownRelation


class Cardinality(str, Enum):
    MANDATORY_ONE_TO_ONE = "mandatory_one_to_one"
    OPTIONAL_MANY_TO_MANY = "optional_many_to_many"


@dataclass(frozen=True, slots=True)
class JoinKey:
    """Join key pair between the primary entity and a relation target.

    For a mandatory relation the foreign key lives on the primary entity
    (``primary_column``) and points at ``target_column`` of the target table.
    For an optional relation the pair lives on a junction table:
    ``junction_primary`` references the primary entity and ``junction_target``
    references the target table.
    """

    primary_column: str = "id"
    target_column: str = "id"
    junction: Optional[str] = None
    junction_primary: Optional[str] = None
    junction_target: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RelationDescriptor:
    """Static description of one relation.

    Attributes:
        name: Relation name used in requests.
        cardinality: Mandatory one-to-one or optional many-to-many.
        target: Target table name.
        join: Join key pair.
        keyword_column: Target column used for keyword matching.
        keyword_eligible: Whether keyword predicates are allowed.
        selectivity: Expected fraction of postings matching a typical
            criterion on this relation. Smaller values are evaluated first.
        projected_as: Projection field name for mandatory relations.
    """

    name: str
    cardinality: Cardinality
    target: str
    join: JoinKey
    keyword_column: str = "name"
    keyword_eligible: bool = True
    selectivity: float = 0.5
    projected_as: Optional[str] = None

    @property
    def mandatory(self) -> bool:
        return self.cardinality is Cardinality.MANDATORY_ONE_TO_ONE


@dataclass(frozen=True, slots=True)
class PrimaryEntity:
    """Columns of the primary entity that requests may touch."""

    table: str
    id_column: str
    filter_columns: frozenset[str]
    keyword_columns: tuple[str, ...]
    sort_columns: frozenset[str]
    projection_columns: tuple[str, ...]


class RelationCatalog:
    """Immutable registry of relations keyed by name."""

    __slots__ = ("_relations", "_primary")

    def __init__(self, primary: PrimaryEntity, relations: Sequence[RelationDescriptor]) -> None:
        table: dict[str, RelationDescriptor] = {}
        for descriptor in relations:
            if descriptor.name in table:
                raise ValueError(f"Duplicate relation in catalog: {descriptor.name}")
            if not 0.0 < descriptor.selectivity <= 1.0:
                raise ValueError(f"Selectivity for {descriptor.name} must be in (0, 1]")
            if descriptor.mandatory and not descriptor.projected_as:
                raise ValueError(f"Mandatory relation {descriptor.name} requires projected_as")
            if not descriptor.mandatory and descriptor.join.junction is None:
                raise ValueError(f"Optional relation {descriptor.name} requires a junction table")
            table[descriptor.name] = descriptor
        self._relations: Mapping[str, RelationDescriptor] = MappingProxyType(table)
        self._primary = primary

    @property
    def primary(self) -> PrimaryEntity:
        return self._primary

    def describe(self, name: str) -> RelationDescriptor:
        """Return the descriptor for ``name``.

        Raises:
            UnknownRelation: If the relation is not registered.
        """
        try:
            return self._relations[name]
        except KeyError:
            raise UnknownRelation(name) from None

    def mandatory(self) -> tuple[RelationDescriptor, ...]:
        """Mandatory relations in declaration order."""
        return tuple(d for d in self._relations.values() if d.mandatory)

    def optional(self) -> tuple[RelationDescriptor, ...]:
        return tuple(d for d in self._relations.values() if not d.mandatory)

    def selectivity(self, name: str) -> float:
        return self.describe(name).selectivity

    def __contains__(self, name: object) -> bool:
        return name in self._relations

    def __len__(self) -> int:
        return len(self._relations)


JOB_POSTINGS = PrimaryEntity(
    table="job_postings",
    id_column="id",
    filter_columns=frozenset({"status", "is_deleted", "category_id", "job_type_id"}),
    keyword_columns=("title", "description", "company"),
    sort_columns=frozenset({"posted_at", "salary_max", "title", "id"}),
    projection_columns=(
        "id",
        "title",
        "description",
        "company",
        "location",
        "status",
        "is_deleted",
        "category_id",
        "job_type_id",
        "salary_min",
        "salary_max",
        "posted_at",
    ),
)


def _many_to_many(name: str, target: str, target_key: str, selectivity: float) -> RelationDescriptor:
    return RelationDescriptor(
        name=name,
        cardinality=Cardinality.OPTIONAL_MANY_TO_MANY,
        target=target,
        join=JoinKey(
            junction=f"job_{name}",
            junction_primary="job_id",
            junction_target=target_key,
        ),
        selectivity=selectivity,
    )


DEFAULT_RELATIONS: tuple[RelationDescriptor, ...] = (
    RelationDescriptor(
        name="category",
        cardinality=Cardinality.MANDATORY_ONE_TO_ONE,
        target="categories",
        join=JoinKey(primary_column="category_id"),
        selectivity=0.9,
        projected_as="category",
    ),
    RelationDescriptor(
        name="job_type",
        cardinality=Cardinality.MANDATORY_ONE_TO_ONE,
        target="job_types",
        join=JoinKey(primary_column="job_type_id"),
        selectivity=0.9,
        projected_as="job_type",
    ),
    _many_to_many("qualifications", "qualifications", "qualification_id", 0.1),
    _many_to_many("skills", "skills", "skill_id", 0.2),
    _many_to_many("tools", "tools", "tool_id", 0.25),
    _many_to_many("career_paths", "career_paths", "career_path_id", 0.4),
    _many_to_many("personalities", "personalities", "personality_id", 0.6),
)


def build_catalog(
    selectivity_overrides: Mapping[str, float] | None = None,
    *,
    relations: Sequence[RelationDescriptor] = DEFAULT_RELATIONS,
    primary: PrimaryEntity = JOB_POSTINGS,
) -> RelationCatalog:
    """Build the process-wide catalog.

    Args:
        selectivity_overrides: Per-deployment selectivity hints by relation name.
        relations: Relation declarations, in declaration order.
        primary: Primary entity description.

    Returns:
        A read-only catalog.

    Raises:
        UnknownRelation: If an override names an unregistered relation.
        ValueError: If the declarations are inconsistent.
    """
    overrides = dict(selectivity_overrides or {})
    known = {d.name for d in relations}
    for name in overrides:
        if name not in known:
            raise UnknownRelation(name)

    resolved = [
        replace(d, selectivity=float(overrides[d.name])) if d.name in overrides else d
        for d in relations
    ]
    return RelationCatalog(primary, resolved)
