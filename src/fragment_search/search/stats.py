"""Statistical helpers for TF-IDF style scoring.

The functions here stay independent of the index structure so they can be
unit tested on plain numbers before being wired into the query engine.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import math


@dataclass(frozen=True)
class LengthStats:
    """Aggregated token counts across every indexed fragment."""

    total_terms: int
    fragment_count: int
    longest: int = 0

    @property
    def average_length(self) -> float:
        if self.fragment_count == 0:
            return 0.0
        return self.total_terms / self.fragment_count


def compute_length_stats(lengths: Iterable[int]) -> LengthStats:
    """Return aggregate stats given per-fragment token counts."""

    total = 0
    count = 0
    longest = 0
    for length in lengths:
        clamped = max(length, 0)
        total += clamped
        count += 1
        longest = max(longest, clamped)
    return LengthStats(total_terms=total, fragment_count=count, longest=longest)


def calculate_idf(doc_freq: int, total_docs: int) -> float:
    """Return ``log(1 + N / df)``.

    Always positive for a term that occurs at all, so common terms in a small
    corpus still contribute a little rather than cancelling out.
    """

    if total_docs <= 0 or doc_freq <= 0:
        return 0.0
    df = min(doc_freq, total_docs)
    return math.log(1.0 + total_docs / df)


def weighted_term_frequency(title_tf: int, body_tf: int, title_boost: float) -> float:
    """Combine title and body occurrences, boosting the title ones."""

    if title_tf <= 0 and body_tf <= 0:
        return 0.0
    return max(title_tf, 0) * title_boost + max(body_tf, 0)
