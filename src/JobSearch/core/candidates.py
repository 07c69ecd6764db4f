from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator


@dataclass(frozen=True, slots=True)
class CandidateSet:
    """Posting ids surviving the plan nodes applied so far.

    The set is unique by construction. ``narrow`` intersects with the current
    ids, so its size never grows no matter what a storage capability returns.
    """

    ids: frozenset[int] = frozenset()

    @classmethod
    def of(cls, ids: Iterable[int]) -> CandidateSet:
        return cls(frozenset(ids))

    def narrow(self, surviving: Iterable[int]) -> CandidateSet:
        return CandidateSet(self.ids.intersection(surviving))

    def intersect(self, other: CandidateSet) -> CandidateSet:
        return CandidateSet(self.ids & other.ids)

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self.ids))

    def __contains__(self, item: object) -> bool:
        return item in self.ids

    def __bool__(self) -> bool:
        return bool(self.ids)
