from __future__ import annotations

"""Public configuration API for JobSearch."""

from JobSearch.config.app import (
    DEFAULT_CONFIG_PATH,
    AppConfig,
    check_cross_domain,
    load_config,
    load_config_with_defaults,
    merge_config_dicts,
    parse_config_dict,
    parse_yaml,
)
from JobSearch.config.catalog import CatalogConfig
from JobSearch.config.output import OutputConfig
from JobSearch.config.request import parse_search_request
from JobSearch.config.runtime import RuntimeConfig
from JobSearch.config.search import SearchConfig
from JobSearch.config.storage import StorageConfig

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "RuntimeConfig",
    "StorageConfig",
    "SearchConfig",
    "CatalogConfig",
    "OutputConfig",
    "AppConfig",
    "load_config",
    "load_config_with_defaults",
    "parse_config_dict",
    "parse_yaml",
    "merge_config_dicts",
    "check_cross_domain",
    "parse_search_request",
]
