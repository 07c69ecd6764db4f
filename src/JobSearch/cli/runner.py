"""Command runner for coordinating CLI execution.

Manages component lifecycle, logging configuration and error handling for
command execution.
"""

from __future__ import annotations

from pathlib import Path

import click

from JobSearch.cli.commands import (
    ExplainCommand,
    RequestOptions,
    SearchCommand,
    SeedCommand,
    build_request,
)
from JobSearch.config import AppConfig
from JobSearch.renderers import create_output_writer
from JobSearch.services import create_search_service
from JobSearch.storage import JobPostingStore, create_storage
from JobSearch.utils.log import configure_logging, log


class CommandRunner:
    """Orchestrates command execution with proper resource management.

    Each ``run_*`` method configures logging, opens the database, runs the
    command, and turns any failure into ``click.Abort`` after logging it.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def _configure_logging(self, action: str) -> None:
        configure_logging(self.config.runtime, action)

    def run_search(self, action: str, options: RequestOptions, timeout: float | None) -> None:
        """Execute a search and write results through configured writers.

        Args:
            action: The CLI command name (e.g., 'search').
            options: Request options from the command line.
            timeout: Per-search timeout override in seconds.

        Raises:
            click.Abort: When the search fails.
        """
        self._configure_logging(action)
        try:
            request = build_request(self.config, options)
            db_manager, storage = create_storage(self.config)
            with db_manager:
                command = SearchCommand(
                    search_service=create_search_service(self.config, storage),
                    output_writer=create_output_writer(self.config),
                    request=request,
                    timeout=timeout,
                )
                command.execute()
                command.output_writer.finalize(action)
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Search failed: %s", e)
            raise click.Abort from e

    def run_explain(self, action: str, options: RequestOptions) -> None:
        """Print the ordered plan for a request.

        Raises:
            click.Abort: When the request does not compile.
        """
        self._configure_logging(action)
        try:
            request = build_request(self.config, options)
            ExplainCommand(
                search_service=create_search_service(self.config),
                request=request,
            ).execute()
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Explain failed: %s", e)
            raise click.Abort from e

    def run_seed(self, action: str, fixture_path: Path) -> None:
        """Load a fixture file into the configured database.

        Raises:
            click.Abort: When loading fails.
        """
        self._configure_logging(action)
        try:
            db_manager, _ = create_storage(self.config)
            with db_manager:
                SeedCommand(store=JobPostingStore(db_manager), fixture_path=fixture_path).execute()
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("Seed failed: %s", e)
            raise click.Abort from e
