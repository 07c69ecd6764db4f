"""Base classes for output writers.

Search commands hand each page of results to an OutputWriter; writers
decide whether to print immediately or accumulate and flush on finalize.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from JobSearch.core.models import JobPosting, SearchRequest


class OutputWriter(ABC):
    """Abstract base class for command output writers."""

    @abstractmethod
    def write_search_result(
        self,
        postings: list[JobPosting],
        request: SearchRequest,
        total: int,
    ) -> None:
        """Write one page of search results.

        Args:
            postings: Postings on the requested page, in result order.
            request: The request that produced them.
            total: Number of matches across all pages.
        """

    @abstractmethod
    def finalize(self, action: str) -> None:
        """Finalize output (e.g., write accumulated results to file).

        Args:
            action: The CLI command name (e.g., 'search').
        """


@dataclass(slots=True)
class MultiOutputWriter(OutputWriter):
    """Delegate output to multiple writers."""

    writers: Sequence[OutputWriter]

    def write_search_result(
        self,
        postings: list[JobPosting],
        request: SearchRequest,
        total: int,
    ) -> None:
        for writer in self.writers:
            writer.write_search_result(postings, request, total)

    def finalize(self, action: str) -> None:
        for writer in self.writers:
            writer.finalize(action)
