"""CLI package for JobSearch command orchestration."""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from JobSearch.cli.runner import CommandRunner
from JobSearch.cli.ui import cli


def main() -> None:
    """Run the JobSearch CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
