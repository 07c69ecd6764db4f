"""Search domain configuration: paging limits, timeouts and execution knobs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from JobSearch.config.common import (
    expect_bool,
    expect_float,
    expect_int,
    get_optional_value,
    get_required_value,
    get_section,
)


@dataclass(frozen=True, slots=True)
class SearchConfig:
    """Store validated search execution settings.

    Attributes:
        default_page_size: Page size when a request does not give one.
        max_page_size: Largest page size a request may ask for.
        timeout_seconds: Per-search timeout; 0 disables it.
        parallel_exists: Run equally selective existence checks concurrently.
        max_workers: Thread pool size for concurrent existence checks.
        plan_cache_size: Number of compiled plans kept; 0 disables caching.
    """

    default_page_size: int
    max_page_size: int
    timeout_seconds: float
    parallel_exists: bool
    max_workers: int
    plan_cache_size: int


def load_search(raw: Mapping[str, Any]) -> SearchConfig:
    """Load search domain config from raw mapping.

    Args:
        raw: Root configuration mapping.

    Returns:
        Parsed search configuration.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "search", required=True)
    return SearchConfig(
        default_page_size=expect_int(
            get_required_value(section, "default_page_size", "search.default_page_size"),
            "search.default_page_size",
        ),
        max_page_size=expect_int(
            get_required_value(section, "max_page_size", "search.max_page_size"),
            "search.max_page_size",
        ),
        timeout_seconds=expect_float(
            get_optional_value(section, "timeout_seconds", 0), "search.timeout_seconds"
        ),
        parallel_exists=expect_bool(
            get_optional_value(section, "parallel_exists", False), "search.parallel_exists"
        ),
        max_workers=expect_int(get_optional_value(section, "max_workers", 4), "search.max_workers"),
        plan_cache_size=expect_int(
            get_optional_value(section, "plan_cache_size", 128), "search.plan_cache_size"
        ),
    )


def check_search(config: SearchConfig) -> None:
    """Validate search domain constraints.

    Raises:
        ValueError: If values violate search constraints.
    """
    if config.default_page_size <= 0:
        raise ValueError("search.default_page_size must be positive")
    if config.max_page_size <= 0:
        raise ValueError("search.max_page_size must be positive")
    if config.timeout_seconds < 0:
        raise ValueError("search.timeout_seconds must be 0 or positive")
    if config.max_workers <= 0:
        raise ValueError("search.max_workers must be positive")
    if config.plan_cache_size < 0:
        raise ValueError("search.plan_cache_size must be 0 or positive")
