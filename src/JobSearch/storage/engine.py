"""SQLite implementation of the storage capability.

Every narrowing call is a single-table lookup or a correlated ``EXISTS``
restricted to the current candidate ids, so no query ever returns more than
one row per posting. Table and column names come from the relation catalog;
values are always bound as parameters.
"""

from __future__ import annotations

import sqlite3
from typing import AbstractSet, Any, Iterable, Iterator, Optional, Sequence

from JobSearch.core.catalog import JOB_POSTINGS, JoinKey, PrimaryEntity, RelationDescriptor
from JobSearch.core.errors import StorageUnavailable
from JobSearch.core.models import MatchKind, MatchMode, MatchPredicate, Pagination, SortSpec
from JobSearch.core.predicates import FilterOperator, PrimaryFilter
from JobSearch.utils.log import log

# Stay below SQLITE_MAX_VARIABLE_NUMBER on older builds (999).
_MAX_VARIABLES = 900
_LIKE_ESCAPE = "\\"


class SqliteStorageEngine:
    """Storage capability backed by a SQLite connection."""

    def __init__(self, conn: sqlite3.Connection, primary: PrimaryEntity = JOB_POSTINGS) -> None:
        self.conn = conn
        self.primary = primary

    def scan_primary(
        self,
        filters: Sequence[PrimaryFilter],
        within: Optional[AbstractSet[int]] = None,
    ) -> set[int]:
        """Return ids of postings matching all ``filters``."""
        clauses: list[str] = []
        params: list[Any] = []
        for node in filters:
            clause, values = self._filter_sql(node)
            clauses.append(clause)
            params.extend(values)

        base = f"SELECT p.{self.primary.id_column} FROM {self.primary.table} p"
        if within is None:
            where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
            return self._ids(base + where, params)

        return self._ids_within(base, clauses, params, within)

    def join_narrow(
        self,
        candidates: AbstractSet[int],
        relation: RelationDescriptor,
        join: JoinKey,
    ) -> set[int]:
        """Keep candidates whose one-to-one relation resolves to a target row."""
        base = (
            f"SELECT p.{self.primary.id_column} FROM {self.primary.table} p"
            f" JOIN {relation.target} t ON t.{join.target_column} = p.{join.primary_column}"
        )
        return self._ids_within(base, [], [], candidates)

    def exists_narrow(
        self,
        candidates: AbstractSet[int],
        relation: RelationDescriptor,
        predicate: MatchPredicate,
    ) -> set[int]:
        """Keep candidates with at least one matching related row."""
        join = relation.join
        if join.junction is None or join.junction_primary is None or join.junction_target is None:
            raise ValueError(f"Relation {relation.name} has no junction table")

        if predicate.kind is MatchKind.IDS and predicate.mode is MatchMode.ALL:
            return self._all_ids_narrow(candidates, relation, predicate)

        id_col = self.primary.id_column
        if predicate.kind is MatchKind.IDS:
            subquery = (
                f"SELECT 1 FROM {join.junction} j"
                f" WHERE j.{join.junction_primary} = p.{id_col}"
                f" AND j.{join.junction_target} IN (SELECT value FROM json_each(?))"
            )
            params: list[Any] = [_json_ids(predicate.ids)]
        else:
            subquery = (
                f"SELECT 1 FROM {join.junction} j"
                f" JOIN {relation.target} t ON t.{join.target_column} = j.{join.junction_target}"
                f" WHERE j.{join.junction_primary} = p.{id_col}"
                f" AND t.{relation.keyword_column} LIKE ? ESCAPE '{_LIKE_ESCAPE}'"
            )
            params = [_like_pattern(predicate.keyword)]

        base = f"SELECT p.{id_col} FROM {self.primary.table} p"
        return self._ids_within(base, [f"EXISTS ({subquery})"], params, candidates)

    def fetch_projection(
        self,
        ids: AbstractSet[int],
        sort: SortSpec,
        pagination: Pagination,
        relations: Sequence[RelationDescriptor],
    ) -> Iterator[dict[str, Any]]:
        """Yield the projected page for ``ids`` in sort order.

        Rows carry the primary entity's projection columns plus, for each of
        ``relations``, the target's keyword column under ``projected_as``.
        Each relation is an inner join, so it must be one-to-one.
        """
        if not ids:
            return iter(())

        column = sort.field.value
        if column not in self.primary.sort_columns:
            raise ValueError(f"Unsortable column: {column}")
        direction = "DESC" if sort.descending else "ASC"
        id_col = self.primary.id_column

        ordered = sorted(ids)
        if len(ordered) <= _MAX_VARIABLES:
            id_filter = f"p.{id_col} IN ({_placeholders(ordered)})"
            params: list[Any] = list(ordered)
        else:
            id_filter = f"p.{id_col} IN (SELECT value FROM json_each(?))"
            params = [_json_ids(ordered)]

        columns = [f"p.{name}" for name in self.primary.projection_columns]
        joins: list[str] = []
        for idx, relation in enumerate(relations):
            if not relation.mandatory or not relation.projected_as:
                raise ValueError(f"Relation {relation.name} cannot be projected")
            alias = f"r{idx}"
            columns.append(f"{alias}.{relation.keyword_column} AS {relation.projected_as}")
            joins.append(
                f"JOIN {relation.target} {alias}"
                f" ON {alias}.{relation.join.target_column} = p.{relation.join.primary_column}"
            )

        sql = f"""
            SELECT {", ".join(columns)}
            FROM {self.primary.table} p
            {" ".join(joins)}
            WHERE {id_filter}
            ORDER BY p.{column} IS NULL, p.{column} {direction}, p.{id_col} ASC
            LIMIT ? OFFSET ?
        """
        params.extend([pagination.page_size, pagination.offset])
        rows = self._fetch(sql, params)
        return (dict(row) for row in rows)

    def interrupt(self) -> None:
        """Abort the statement currently running on the connection."""
        log.debug("Interrupting in-flight SQLite statement")
        self.conn.interrupt()

    def _all_ids_narrow(
        self,
        candidates: AbstractSet[int],
        relation: RelationDescriptor,
        predicate: MatchPredicate,
    ) -> set[int]:
        join = relation.join
        base = (
            f"SELECT j.{join.junction_primary} FROM {join.junction} j"
            f" WHERE j.{join.junction_target} IN (SELECT value FROM json_each(?))"
        )
        suffix = (
            f" GROUP BY j.{join.junction_primary}"
            f" HAVING COUNT(DISTINCT j.{join.junction_target}) = ?"
        )
        found: set[int] = set()
        target_ids = _json_ids(predicate.ids)
        for chunk in _chunks(sorted(candidates), _MAX_VARIABLES - 2):
            sql = f"{base} AND j.{join.junction_primary} IN ({_placeholders(chunk)}){suffix}"
            found |= self._ids(sql, [target_ids, *chunk, len(predicate.ids)])
        return found

    def _ids_within(
        self,
        base: str,
        clauses: Sequence[str],
        params: Sequence[Any],
        within: AbstractSet[int],
    ) -> set[int]:
        """Run ``base`` restricted to ``within``, chunking large id sets."""
        found: set[int] = set()
        if not within:
            return found
        id_col = self.primary.id_column
        for chunk in _chunks(sorted(within), _MAX_VARIABLES - len(params)):
            where = [*clauses, f"p.{id_col} IN ({_placeholders(chunk)})"]
            found |= self._ids(f"{base} WHERE {' AND '.join(where)}", [*params, *chunk])
        return found

    def _filter_sql(self, node: PrimaryFilter) -> tuple[str, list[Any]]:
        allowed = self.primary.filter_columns | set(self.primary.keyword_columns)
        unknown = set(node.columns) - allowed
        if unknown:
            raise ValueError(f"Unknown primary column(s): {sorted(unknown)}")

        if node.operator is FilterOperator.EQ:
            return f"p.{node.columns[0]} = ?", [_sql_value(node.value)]
        if node.operator is FilterOperator.IN:
            values = sorted(_sql_value(v) for v in node.value)  # type: ignore[union-attr]
            return f"p.{node.columns[0]} IN ({_placeholders(values)})", values
        if node.operator is FilterOperator.CONTAINS:
            pattern = _like_pattern(str(node.value))
            parts = [f"p.{column} LIKE ? ESCAPE '{_LIKE_ESCAPE}'" for column in node.columns]
            return "(" + " OR ".join(parts) + ")", [pattern] * len(parts)
        raise ValueError(f"Unsupported operator: {node.operator}")

    def _ids(self, sql: str, params: Sequence[Any]) -> set[int]:
        return {int(row[0]) for row in self._fetch(sql, params)}

    def _fetch(self, sql: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        try:
            return self.conn.execute(sql, list(params)).fetchall()
        except sqlite3.Error as error:
            raise StorageUnavailable(f"SQLite query failed: {error}") from error


def _placeholders(values: Sequence[Any]) -> str:
    return ",".join("?" for _ in values)


def _json_ids(values: Iterable[int]) -> str:
    return "[" + ",".join(str(int(v)) for v in sorted(values)) + "]"


def _chunks(values: Sequence[int], size: int) -> Iterable[Sequence[int]]:
    if size <= 0:
        raise ValueError("Too many bound values for one statement")
    for start in range(0, len(values), size):
        yield values[start : start + size]


def _sql_value(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    return value


def _like_pattern(term: str) -> str:
    escaped = (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
