"""JSON output.

Renders postings into JSON-serializable objects and provides JsonFileWriter,
which accumulates pages and writes a single file on finalize.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from JobSearch.core.models import JobPosting, SearchRequest
from JobSearch.renderers.base import OutputWriter
from JobSearch.utils.log import log


def render_json(postings: Iterable[JobPosting]) -> list[dict]:
    """Render postings into JSON-serializable Python objects."""
    out: list[dict] = []
    for posting in postings:
        out.append(
            {
                "id": posting.id,
                "title": posting.title,
                "company": posting.company,
                "status": posting.status.value,
                "category": {"id": posting.category_id, "name": posting.category},
                "job_type": {"id": posting.job_type_id, "name": posting.job_type},
                "description": posting.description,
                "location": posting.location,
                "salary": {"min": posting.salary_min, "max": posting.salary_max},
                "posted_at": posting.posted_at.isoformat() if posting.posted_at else None,
                "is_deleted": posting.is_deleted,
            }
        )
    return out


def request_payload(request: SearchRequest) -> dict[str, Any]:
    """Describe a request in JSON form, with sets sorted for stable output."""
    return {
        "status": sorted(s.value for s in request.statuses),
        "include_deleted": request.include_deleted,
        "category": sorted(request.category_ids),
        "job_type": sorted(request.job_type_ids),
        "keyword": request.keyword,
        "criteria": [
            {
                "relation": c.relation,
                "kind": c.predicate.kind.value,
                "ids": sorted(c.predicate.ids),
                "keyword": c.predicate.keyword or None,
                "mode": c.predicate.mode.value,
            }
            for c in request.criteria
        ],
        "sort": {"field": request.sort.field.value, "descending": request.sort.descending},
        "page": request.pagination.page,
        "page_size": request.pagination.page_size,
    }


class JsonFileWriter(OutputWriter):
    """Accumulate results and write to JSON file on finalize."""

    def __init__(self, base_dir: str) -> None:
        self.output_dir = Path(base_dir) / "json"
        self.all_results: list[dict] = []

    def write_search_result(
        self,
        postings: list[JobPosting],
        request: SearchRequest,
        total: int,
    ) -> None:
        self.all_results.append(
            {
                "request": request_payload(request),
                "total": total,
                "postings": render_json(postings),
            }
        )

    def finalize(self, action: str) -> None:
        """Write accumulated results to ``<base_dir>/json/<action>_<ts>.json``."""
        if not self.all_results:
            return
        payload = json.dumps(self.all_results, ensure_ascii=False, indent=2)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_path = self.output_dir / f"{action}_{timestamp}.json"
        output_path.write_text(payload, encoding="utf-8")
        log.info("JSON saved to %s", output_path)
