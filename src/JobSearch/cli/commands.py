"""Command implementations for the JobSearch CLI.

Encapsulates the work behind each command, separated from click parameter
handling in ``ui.py`` and resource lifecycle in ``runner.py``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml
from dateutil import parser as date_parser

from JobSearch.config import AppConfig, merge_config_dicts, parse_search_request, parse_yaml
from JobSearch.core.catalog import DEFAULT_RELATIONS
from JobSearch.core.models import PostingStatus, SearchRequest
from JobSearch.renderers import OutputWriter
from JobSearch.services.search import JobSearchService
from JobSearch.storage.postings import JobPostingStore, PostingRecord
from JobSearch.utils.log import log, log_lines


@dataclass(frozen=True, slots=True)
class RequestOptions:
    """Search options collected from the command line.

    ``None`` and empty tuples mean "not given" so values from a request file
    survive unless overridden.
    """

    request_file: Path | None = None
    statuses: tuple[str, ...] = ()
    categories: tuple[int, ...] = ()
    job_types: tuple[int, ...] = ()
    keyword: str | None = None
    include_deleted: bool | None = None
    has: tuple[str, ...] = ()
    has_id: tuple[str, ...] = ()
    has_all: tuple[str, ...] = ()
    sort: str | None = None
    page: int | None = None
    page_size: int | None = None


def build_request(config: AppConfig, options: RequestOptions) -> SearchRequest:
    """Combine an optional request file with command line overrides.

    Scalar options replace file values; relation options are appended to
    the file's criteria.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If an option is malformed.
    """
    raw: dict[str, Any] = {}
    if options.request_file is not None:
        raw = parse_yaml(options.request_file.read_text(encoding="utf-8"))

    override: dict[str, Any] = {}
    if options.statuses:
        override["status"] = list(options.statuses)
    if options.categories:
        override["category"] = list(options.categories)
    if options.job_types:
        override["job_type"] = list(options.job_types)
    if options.keyword is not None:
        override["keyword"] = options.keyword
    if options.include_deleted is not None:
        override["include_deleted"] = options.include_deleted
    if options.sort is not None:
        override["sort"] = options.sort
    if options.page is not None:
        override["page"] = options.page
    if options.page_size is not None:
        override["page_size"] = options.page_size

    criteria = list(raw.get("criteria") or [])
    for item in options.has:
        relation, term = _split_option(item, "--has")
        criteria.append({"relation": relation, "keyword": term})
    for item in options.has_id:
        relation, ids = _split_option(item, "--has-id")
        criteria.append({"relation": relation, "ids": _parse_ids(ids, "--has-id"), "mode": "any"})
    for item in options.has_all:
        relation, ids = _split_option(item, "--has-all")
        criteria.append({"relation": relation, "ids": _parse_ids(ids, "--has-all"), "mode": "all"})
    if criteria:
        override["criteria"] = criteria

    return parse_search_request(merge_config_dicts(raw, override), config.search)


def _split_option(value: str, option: str) -> tuple[str, str]:
    relation, sep, rest = value.partition("=")
    if not sep or not relation.strip() or not rest.strip():
        raise ValueError(f"{option} expects RELATION=VALUE, got {value!r}")
    return relation.strip(), rest.strip()


def _parse_ids(text: str, option: str) -> list[int]:
    try:
        return [int(part) for part in text.split(",") if part.strip()]
    except ValueError as exc:
        raise ValueError(f"{option} expects comma-separated integer ids, got {text!r}") from exc


@dataclass(slots=True)
class SearchCommand:
    """Run one search and hand the page to the output writer."""

    search_service: JobSearchService
    output_writer: OutputWriter
    request: SearchRequest
    timeout: float | None = None

    def execute(self) -> None:
        log.debug("Running search request=%s", self.request)
        result = self.search_service.search(self.request, timeout=self.timeout)
        log_lines(logging.DEBUG, "Execution trace:", result.trace.describe())
        postings = list(result.postings)
        self.output_writer.write_search_result(postings, self.request, result.total)


@dataclass(slots=True)
class ExplainCommand:
    """Print the ordered plan for a request without running it."""

    search_service: JobSearchService
    request: SearchRequest

    def execute(self) -> None:
        plan = self.search_service.explain(self.request)
        log_lines(logging.INFO, f"Plan ({len(plan)} steps):", plan.describe())


@dataclass(slots=True)
class SeedCommand:
    """Load postings from a YAML fixture into the database."""

    store: JobPostingStore
    fixture_path: Path
    records: list[PostingRecord] = field(default_factory=list)

    def execute(self) -> int:
        self.records = load_fixture(self.fixture_path)
        count = self.store.save_postings(self.records)
        log.info("Seeded %d postings from %s", count, self.fixture_path)
        return count


def load_fixture(path: Path) -> list[PostingRecord]:
    """Read a ``postings:`` fixture file.

    Each entry carries posting columns plus optional relation lists keyed by
    relation name, for example ``skills: [Python, SQL]``.

    Raises:
        ValueError: If the fixture is malformed.
    """
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, Mapping):
        raise ValueError("Fixture root must be a mapping/object")
    entries = data.get("postings") or []
    if not isinstance(entries, list):
        raise ValueError("postings must be a list")
    return [parse_posting(entry, f"postings[{idx}]") for idx, entry in enumerate(entries)]


_REQUIRED_FIELDS = ("id", "title", "company", "category", "job_type")
_RELATION_FIELDS = tuple(d.name for d in DEFAULT_RELATIONS if not d.mandatory)


def parse_posting(entry: Any, key: str) -> PostingRecord:
    """Convert one fixture entry into a PostingRecord."""
    if not isinstance(entry, Mapping):
        raise ValueError(f"{key} must be an object")
    missing = [name for name in _REQUIRED_FIELDS if entry.get(name) in (None, "")]
    if missing:
        raise ValueError(f"{key} is missing {', '.join(missing)}")

    relations: dict[str, Sequence[str]] = {}
    for relation in _RELATION_FIELDS:
        names = entry.get(relation)
        if names is None:
            continue
        if isinstance(names, str):
            names = [names]
        relations[relation] = [str(name) for name in names]

    return PostingRecord(
        id=int(entry["id"]),
        title=str(entry["title"]),
        company=str(entry["company"]),
        category=str(entry["category"]),
        job_type=str(entry["job_type"]),
        status=PostingStatus(str(entry.get("status", PostingStatus.OPEN.value)).lower()),
        description=str(entry.get("description") or ""),
        location=entry.get("location"),
        salary_min=entry.get("salary_min"),
        salary_max=entry.get("salary_max"),
        posted_at=parse_date(entry.get("posted_at")),
        is_deleted=bool(entry.get("is_deleted", False)),
        relations=relations,
    )


def parse_date(value: Any) -> datetime | None:
    """Parse a fixture date; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = date_parser.parse(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
