"""Search service layer for JobSearch.

Wires the relation catalog and a storage capability into a search service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from JobSearch.core.catalog import RelationCatalog, build_catalog
from JobSearch.services.search import JobSearchService, PlanCache, SearchResult

if TYPE_CHECKING:
    from JobSearch.config import AppConfig
    from JobSearch.execution.storage import StorageEngine


def create_search_service(
    config: AppConfig,
    storage: StorageEngine | None = None,
    catalog: RelationCatalog | None = None,
) -> JobSearchService:
    """Create a search service from configuration.

    Args:
        config: Application configuration.
        storage: Storage capability to search against. May be omitted when
            the service is only used to explain plans.
        catalog: Prebuilt catalog; built from ``config.catalog`` when omitted.

    Returns:
        Configured JobSearchService instance.
    """
    if catalog is None:
        catalog = build_catalog(config.catalog.selectivity)
    timeout = config.search.timeout_seconds or None
    return JobSearchService(
        catalog=catalog,
        storage=storage,
        parallel_exists=config.search.parallel_exists,
        max_workers=config.search.max_workers,
        default_timeout=timeout,
        plan_cache=PlanCache(config.search.plan_cache_size),
    )


__all__ = [
    "JobSearchService",
    "PlanCache",
    "SearchResult",
    "create_search_service",
]
