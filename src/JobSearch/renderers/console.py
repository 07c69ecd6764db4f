"""Console text output.

Renders postings into human-friendly text and emits it through the logger.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from JobSearch.core.models import JobPosting, SearchRequest
from JobSearch.renderers.base import OutputWriter
from JobSearch.utils.log import log


def _fmt_dt(dt: datetime | None) -> str:
    if not dt:
        return "-"
    return dt.strftime("%Y-%m-%d")


def _fmt_salary(low: Optional[int], high: Optional[int]) -> str:
    if low is None and high is None:
        return "-"
    if low is None:
        return f"up to {high:,}"
    if high is None:
        return f"from {low:,}"
    return f"{low:,} - {high:,}"


def render_text(postings: Iterable[JobPosting], *, start: int = 1) -> str:
    """Render postings into a human-readable text block.

    Args:
        postings: Iterable of postings.
        start: Number shown next to the first posting.

    Returns:
        A formatted string ready to be printed.
    """
    lines: list[str] = []
    for idx, posting in enumerate(postings, start=start):
        lines.append(f"{idx}. [{posting.id}] {posting.title} @ {posting.company}")
        lines.append(f"   Category: {posting.category}  Type: {posting.job_type}")
        lines.append(f"   Status: {posting.status.value}  Posted: {_fmt_dt(posting.posted_at)}")
        if posting.location:
            lines.append(f"   Location: {posting.location}")
        lines.append(f"   Salary: {_fmt_salary(posting.salary_min, posting.salary_max)}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


class ConsoleOutputWriter(OutputWriter):
    """Write results to console via logging."""

    def write_search_result(
        self,
        postings: list[JobPosting],
        request: SearchRequest,
        total: int,
    ) -> None:
        page = request.pagination
        log.info(
            "Found %d postings (page %d, showing %d)", total, page.page, len(postings)
        )
        if not postings:
            return
        for line in render_text(postings, start=page.offset + 1).splitlines():
            log.info(line)

    def finalize(self, action: str) -> None:
        """No-op for console output."""
