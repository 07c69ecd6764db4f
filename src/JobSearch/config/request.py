"""Parse search requests from YAML/JSON-shaped mappings.

Request files use the same helpers as application config so type errors
read the same way, for example ``criteria[1].ids must be a list of integers``.
Relation names are not checked here; the compiler owns that.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from JobSearch.config.common import (
    expect_bool,
    expect_int,
    expect_int_list,
    expect_str,
    expect_str_list,
    get_optional_value,
)
from JobSearch.config.search import SearchConfig
from JobSearch.core.models import (
    MatchMode,
    MatchPredicate,
    Pagination,
    PostingStatus,
    RelationCriterion,
    SearchRequest,
    SortField,
    SortSpec,
)


def parse_search_request(raw: Mapping[str, Any], search: SearchConfig) -> SearchRequest:
    """Build a SearchRequest from a raw mapping.

    Args:
        raw: Request mapping (typically loaded from YAML).
        search: Search config providing page size defaults and limits.

    Returns:
        Parsed request.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If a value is out of range or unknown.
    """
    if not isinstance(raw, Mapping):
        raise TypeError("search request must be an object")

    statuses = parse_statuses(get_optional_value(raw, "status", [PostingStatus.OPEN.value]))
    keyword = get_optional_value(raw, "keyword", None)
    if keyword is not None:
        keyword = expect_str(keyword, "keyword")

    criteria_raw = get_optional_value(raw, "criteria", []) or []
    if not isinstance(criteria_raw, list):
        raise TypeError("criteria must be a list")

    return SearchRequest(
        statuses=statuses,
        include_deleted=expect_bool(get_optional_value(raw, "include_deleted", False), "include_deleted"),
        category_ids=frozenset(expect_int_list(get_optional_value(raw, "category", []), "category")),
        job_type_ids=frozenset(expect_int_list(get_optional_value(raw, "job_type", []), "job_type")),
        keyword=keyword,
        criteria=tuple(
            parse_criterion(item, f"criteria[{idx}]") for idx, item in enumerate(criteria_raw)
        ),
        sort=parse_sort(get_optional_value(raw, "sort", None)),
        pagination=parse_pagination(
            get_optional_value(raw, "page", 1),
            get_optional_value(raw, "page_size", None),
            search,
        ),
    )


def parse_statuses(value: Any) -> frozenset[PostingStatus]:
    """Parse a status list; ``any`` (or an empty list) lifts the status filter."""
    names = [item.strip().lower() for item in expect_str_list(value, "status")]
    if not names or names == ["any"]:
        return frozenset()
    statuses = set()
    for name in names:
        try:
            statuses.add(PostingStatus(name))
        except ValueError as exc:
            allowed = [s.value for s in PostingStatus]
            raise ValueError(f"status must be one of {allowed}, got {name!r}") from exc
    return frozenset(statuses)


def parse_criterion(raw: Any, config_key: str) -> RelationCriterion:
    """Parse one ``{relation, ids|keyword, mode}`` entry."""
    if not isinstance(raw, Mapping):
        raise TypeError(f"{config_key} must be an object")
    if "relation" not in raw:
        raise ValueError(f"Missing required field: {config_key}.relation")
    relation = expect_str(raw["relation"], f"{config_key}.relation").strip()

    has_ids = "ids" in raw
    has_keyword = "keyword" in raw
    if has_ids == has_keyword:
        raise ValueError(f"{config_key} needs exactly one of 'ids' or 'keyword'")

    if has_keyword:
        keyword = expect_str(raw["keyword"], f"{config_key}.keyword")
        return RelationCriterion(relation, MatchPredicate.containing(keyword))

    ids = expect_int_list(raw["ids"], f"{config_key}.ids")
    mode_name = expect_str(get_optional_value(raw, "mode", MatchMode.ANY.value), f"{config_key}.mode")
    try:
        mode = MatchMode(mode_name.strip().lower())
    except ValueError as exc:
        raise ValueError(f"{config_key}.mode must be 'any' or 'all'") from exc
    if mode is MatchMode.ALL:
        return RelationCriterion(relation, MatchPredicate.all_of(*ids))
    return RelationCriterion(relation, MatchPredicate.any_of(*ids))


def parse_sort(value: Any) -> SortSpec:
    """Parse ``sort`` as ``"field"``, ``"-field"`` or ``{field, descending}``.

    A bare field name sorts ascending; a leading ``-`` sorts descending.
    A missing value keeps the default (newest first).
    """
    if value is None:
        return SortSpec()
    if isinstance(value, Mapping):
        field = expect_str(get_optional_value(value, "field", SortField.POSTED_AT.value), "sort.field")
        descending = expect_bool(get_optional_value(value, "descending", True), "sort.descending")
        return SortSpec(field=_sort_field(field), descending=descending)

    text = expect_str(value, "sort").strip()
    if text.startswith("-"):
        return SortSpec(field=_sort_field(text[1:]), descending=True)
    return SortSpec(field=_sort_field(text), descending=False)


def parse_pagination(page: Any, page_size: Optional[Any], search: SearchConfig) -> Pagination:
    """Validate a page window against configured limits."""
    page_num = expect_int(page, "page")
    size = search.default_page_size if page_size is None else expect_int(page_size, "page_size")
    if page_num < 1:
        raise ValueError("page must be >= 1")
    if size < 1:
        raise ValueError("page_size must be >= 1")
    if size > search.max_page_size:
        raise ValueError(f"page_size must not exceed {search.max_page_size}")
    return Pagination(page=page_num, page_size=size)


def _sort_field(name: str) -> SortField:
    try:
        return SortField(name.strip().lower())
    except ValueError as exc:
        allowed = [f.value for f in SortField]
        raise ValueError(f"sort field must be one of {allowed}, got {name!r}") from exc
