"""Postings and an in-memory buffer that collects them per term."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from typing import NamedTuple

# Estimated cost of one term entry (tree node with key and posting list header)
# and of one stored posting; used to decide when the buffer should be flushed.
_TERM_ENTRY_BYTES = 96
_POSTING_BYTES = 8


class Posting(NamedTuple):
    doc_id: int
    frequency: int


class PostScore(NamedTuple):
    doc_id: int
    score: float


def count_tokens(tokens: Iterable[str]) -> dict[str, int]:
    """Count how often each token occurs in one document."""
    return dict(Counter(tokens))


class PostingsBuffer:
    """Postings grouped by term, with a memory estimate against a capacity."""

    def __init__(self, capacity: int = 0) -> None:
        self.capacity = capacity
        self.size = 0
        self._terms: dict[str, list[Posting]] = {}

    def add_postings(self, doc_id: int, postings: Mapping[str, int]) -> None:
        """Add one document's term frequencies."""
        for term, frequency in postings.items():
            plist = self._terms.get(term)
            if plist is None:
                plist = self._terms[term] = []
                self.size += _TERM_ENTRY_BYTES
            plist.append(Posting(doc_id, frequency))
            self.size += _POSTING_BYTES

    def is_full(self, extra: int = 0) -> bool:
        """True when the used size plus ``extra`` reaches the capacity."""
        return self.size + extra >= self.capacity

    def is_empty(self) -> bool:
        return not self._terms

    def capacity_percent(self) -> float:
        if self.capacity <= 0:
            raise ValueError("buffer has no capacity")
        return 100.0 * self.size / self.capacity

    def items(self) -> Iterator[tuple[str, list[Posting]]]:
        """Yield ``(term, postings)`` in ascending term order."""
        for term in sorted(self._terms):
            yield term, self._terms[term]

    def clear(self) -> None:
        self._terms.clear()
        self.size = 0