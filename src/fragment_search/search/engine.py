"""TF-IDF query engine over an immutable inverted index.

Ranking order for every query:

1. number of distinct query terms a fragment matches (descending),
2. score (descending), where each matched term contributes
   ``(title_tf * title_boost + body_tf) * log(1 + N / df)``,
3. fragment id (ascending) so ties are deterministic.

Pagination is applied after the full ranking.

Queries are analyzed with the analyzer recorded in the index, so a query
process configured differently from the build still sees the indexed
vocabulary.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
import logging

from fragment_search.domain.fragment import Fragment
from fragment_search.search.analyzers import Analyzer, analyzer_for
from fragment_search.search.errors import IncompatibleIndexFormatError, InvalidQueryParameterError
from fragment_search.search.index import InvertedIndex, postings_by_term
from fragment_search.search.stats import calculate_idf, weighted_term_frequency


logger = logging.getLogger(__name__)

DEFAULT_TITLE_BOOST = 2.0


@dataclass(frozen=True)
class ScoringConfig:
    """Scoring constants; ``title_boost`` must be greater than 1."""

    title_boost: float = DEFAULT_TITLE_BOOST

    def __post_init__(self) -> None:
        if self.title_boost <= 1.0:
            msg = f"title_boost must be > 1, got {self.title_boost}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ScoredFragment:
    """A fragment matched by a query, with its score and matched terms."""

    fragment: Fragment
    score: float
    matched_terms: frozenset[str]

    @property
    def fragment_id(self) -> int:
        return self.fragment.id

    def sort_key(self) -> tuple[int, float, int]:
        return (-len(self.matched_terms), -self.score, self.fragment.id)


class QueryEngine:
    """Score and rank fragments of an ``InvertedIndex`` for free-text queries.

    Without an explicit ``analyzer`` each index is queried with the analyzer
    it was built with. An explicit analyzer must match that configuration.
    """

    def __init__(self, *, analyzer: Analyzer | None = None, scoring: ScoringConfig | None = None) -> None:
        self.analyzer = analyzer
        self.scoring = scoring or ScoringConfig()

    def analyzer_for(self, index: InvertedIndex) -> Analyzer:
        """Return the analyzer queries against ``index`` must use.

        Raises:
            IncompatibleIndexFormatError: the engine's analyzer differs from the
                one the index was built with.
        """

        if self.analyzer is None:
            return analyzer_for(index.analyzer)
        if self.analyzer.config != index.analyzer:
            msg = (
                f"Query analyzer {self.analyzer.config.name!r} (min_length={self.analyzer.config.min_length}) "
                f"does not match the index analyzer {index.analyzer.name!r} (min_length={index.analyzer.min_length})"
            )
            raise IncompatibleIndexFormatError(msg)
        return self.analyzer

    def tokenize_query(self, index: InvertedIndex, query: str) -> tuple[str, ...]:
        """Return distinct query terms in first-seen order."""

        analyzer = self.analyzer_for(index)
        normalized = (query or "").strip()
        if not normalized:
            return ()
        seen: dict[str, None] = {}
        for token in analyzer(normalized):
            if token.text:
                seen.setdefault(token.text, None)
        return tuple(seen)

    def rank(self, index: InvertedIndex, query: str) -> list[ScoredFragment]:
        """Return every matching fragment in ranking order."""

        terms = self.tokenize_query(index, query)
        if not terms:
            return []

        resolved = postings_by_term(index, terms)
        if not resolved:
            logger.debug("No indexed terms for query %r (terms=%s)", query, terms)
            return []

        total = index.fragment_count
        title_boost = self.scoring.title_boost
        scores: dict[int, float] = defaultdict(float)
        matched: dict[int, set[str]] = defaultdict(set)

        for term, postings in resolved.items():
            idf = calculate_idf(len(postings), total)
            for posting in postings:
                title_tf = posting.title_frequency(index.title_length(posting.fragment_id))
                body_tf = posting.term_frequency - title_tf
                weight = weighted_term_frequency(title_tf, body_tf, title_boost)
                scores[posting.fragment_id] += weight * idf
                matched[posting.fragment_id].add(term)

        ranked = [
            ScoredFragment(
                fragment=index.fragments[fragment_id],
                score=score,
                matched_terms=frozenset(matched[fragment_id]),
            )
            for fragment_id, score in scores.items()
        ]
        ranked.sort(key=ScoredFragment.sort_key)
        logger.debug("Query %r matched %d fragments over %d terms", query, len(ranked), len(resolved))
        return ranked

    def search(self, index: InvertedIndex, query: str, limit: int, offset: int = 0) -> list[ScoredFragment]:
        """Return one page of ranked fragments.

        Raises:
            InvalidQueryParameterError: ``limit <= 0`` or ``offset < 0``.
        """

        validate_page(limit, offset)
        ranked = self.rank(index, query)
        return ranked[offset : offset + limit]

    def count(self, index: InvertedIndex, query: str) -> int:
        """Return the number of fragments matching at least one query term."""

        terms = self.tokenize_query(index, query)
        fragment_ids: set[int] = set()
        for postings in postings_by_term(index, terms).values():
            fragment_ids.update(posting.fragment_id for posting in postings)
        return len(fragment_ids)


def validate_page(limit: int, offset: int) -> None:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise InvalidQueryParameterError(f"limit must be a positive integer, got {limit!r}")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise InvalidQueryParameterError(f"offset must be a non-negative integer, got {offset!r}")


_DEFAULT_ENGINE = QueryEngine()


def search(index: InvertedIndex, query: str, limit: int, offset: int = 0) -> list[ScoredFragment]:
    """Search ``index`` with the default analyzer and scoring constants."""

    return _DEFAULT_ENGINE.search(index, query, limit, offset)
