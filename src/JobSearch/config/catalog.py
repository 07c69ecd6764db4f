"""Catalog domain configuration: per-deployment selectivity hints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from JobSearch.config.common import expect_float_mapping, get_optional_value, get_section
from JobSearch.core.catalog import DEFAULT_RELATIONS

_KNOWN_RELATIONS = frozenset(d.name for d in DEFAULT_RELATIONS)


@dataclass(frozen=True, slots=True)
class CatalogConfig:
    """Selectivity overrides by relation name."""

    selectivity: Mapping[str, float] = field(default_factory=dict)


def load_catalog(raw: Mapping[str, Any]) -> CatalogConfig:
    """Load the optional ``catalog`` section."""
    section = get_section(raw, "catalog", required=False)
    hints = get_optional_value(section, "selectivity", {}) or {}
    return CatalogConfig(selectivity=expect_float_mapping(hints, "catalog.selectivity"))


def check_catalog(config: CatalogConfig) -> None:
    """Validate selectivity hints.

    Raises:
        ValueError: If a hint names an unknown relation or is out of range.
    """
    for name, value in config.selectivity.items():
        if name not in _KNOWN_RELATIONS:
            raise ValueError(f"catalog.selectivity has unknown relation: {name}")
        if not 0.0 < value <= 1.0:
            raise ValueError(f"catalog.selectivity.{name} must be in (0, 1]")
