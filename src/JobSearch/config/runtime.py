"""Logging settings read from the ``log`` section."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from JobSearch.config.common import (
    expect_bool,
    expect_str,
    get_optional_value,
    get_section,
)

LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Console level and optional per-action log files.

    ``dir`` is the root under which each CLI action gets its own folder when
    ``to_file`` is set.
    """

    level: str = "INFO"
    to_file: bool = False
    dir: str = "log"

    @property
    def level_number(self) -> int:
        return getattr(logging, self.level, logging.INFO)


def load_runtime(raw: Mapping[str, Any]) -> RuntimeConfig:
    """Build ``RuntimeConfig`` from the required ``log`` section.

    Every key in the section is optional and falls back to the dataclass
    default. ``level`` is case-insensitive.
    """
    section = get_section(raw, "log", required=True)
    defaults = RuntimeConfig()
    level = expect_str(get_optional_value(section, "level", defaults.level), "log.level")
    return RuntimeConfig(
        level=level.strip().upper(),
        to_file=expect_bool(get_optional_value(section, "to_file", defaults.to_file), "log.to_file"),
        dir=expect_str(get_optional_value(section, "dir", defaults.dir), "log.dir"),
    )


def check_runtime(config: RuntimeConfig) -> None:
    if config.level not in LOG_LEVELS:
        raise ValueError(f"log.level must be one of {', '.join(LOG_LEVELS)}; got {config.level!r}")
    if config.to_file and not config.dir.strip():
        raise ValueError("log.dir must not be empty when log.to_file is enabled")
