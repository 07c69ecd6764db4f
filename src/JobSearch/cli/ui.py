"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to their respective runners.
"""

from __future__ import annotations

from pathlib import Path

import click
from dotenv import load_dotenv

from JobSearch.cli.commands import RequestOptions
from JobSearch.cli.runner import CommandRunner
from JobSearch.config import DEFAULT_CONFIG_PATH, load_config_with_defaults
from JobSearch.core.models import PostingStatus, SortField

_STATUS_CHOICES = [s.value for s in PostingStatus] + ["any"]
_SORT_CHOICES = [f.value for f in SortField] + [f"-{f.value}" for f in SortField]


def request_options(func):
    """Attach the options shared by ``search`` and ``explain``."""
    options = [
        click.option(
            "--request",
            "request_file",
            type=click.Path(path_type=Path, dir_okay=False, exists=True),
            help="YAML file describing the request; options below override it.",
        ),
        click.option(
            "--status",
            "statuses",
            multiple=True,
            type=click.Choice(_STATUS_CHOICES, case_sensitive=False),
            help="Allowed posting status (repeatable). Default: open.",
        ),
        click.option("--category", "categories", multiple=True, type=int, help="Category id (repeatable)."),
        click.option("--job-type", "job_types", multiple=True, type=int, help="Job type id (repeatable)."),
        click.option("--keyword", help="Substring matched against title, description and company."),
        click.option(
            "--include-deleted/--exclude-deleted",
            default=None,
            help="Whether soft-deleted postings are eligible.",
        ),
        click.option(
            "--has", multiple=True, metavar="RELATION=TERM",
            help="Keep postings with a related row whose name contains TERM.",
        ),
        click.option(
            "--has-id", multiple=True, metavar="RELATION=ID[,ID...]",
            help="Keep postings related to any of the ids.",
        ),
        click.option(
            "--has-all", multiple=True, metavar="RELATION=ID[,ID...]",
            help="Keep postings related to all of the ids.",
        ),
        click.option(
            "--sort",
            type=click.Choice(_SORT_CHOICES),
            help="Sort field; prefix with '-' for descending. Default: -posted_at.",
        ),
        click.option("--page", type=int, help="Page number, starting at 1."),
        click.option("--page-size", type=int, help="Results per page."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _collect(kwargs: dict) -> RequestOptions:
    return RequestOptions(
        request_file=kwargs["request_file"],
        statuses=tuple(kwargs["statuses"]),
        categories=tuple(kwargs["categories"]),
        job_types=tuple(kwargs["job_types"]),
        keyword=kwargs["keyword"],
        include_deleted=kwargs["include_deleted"],
        has=tuple(kwargs["has"]),
        has_id=tuple(kwargs["has_id"]),
        has_all=tuple(kwargs["has_all"]),
        sort=kwargs["sort"],
        page=kwargs["page"],
        page_size=kwargs["page_size"],
    )


@click.group(help="JobSearch: filter job postings by status, category and related attributes.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to YAML config file, merged over the defaults.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config.
    """
    load_dotenv()
    ctx.obj = load_config_with_defaults(config_path)


@cli.command("search")
@request_options
@click.option("--timeout", type=float, help="Cancel the search after this many seconds.")
@click.pass_context
def search_cmd(ctx: click.Context, timeout: float | None, **kwargs) -> None:
    """Search postings and write results through configured writers."""
    runner = CommandRunner(ctx.obj)
    runner.run_search(action=ctx.command.name, options=_collect(kwargs), timeout=timeout)


@cli.command("explain")
@request_options
@click.pass_context
def explain_cmd(ctx: click.Context, **kwargs) -> None:
    """Print the ordered execution plan for a request."""
    runner = CommandRunner(ctx.obj)
    runner.run_explain(action=ctx.command.name, options=_collect(kwargs))


@cli.command("seed")
@click.argument("fixture", type=click.Path(path_type=Path, dir_okay=False, exists=True))
@click.pass_context
def seed_cmd(ctx: click.Context, fixture: Path) -> None:
    """Load postings from a YAML fixture file."""
    runner = CommandRunner(ctx.obj)
    runner.run_seed(action=ctx.command.name, fixture_path=fixture)
