"""Search service orchestration layer.

Owns the one piece of process-wide state: the currently published index
generation. A new generation is always built (or loaded) completely before
``IndexPublisher.publish`` swaps the reference. Queries read the reference
once when they start, so queries already running keep using the previous
generation until they finish. Readers never take a lock.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
import logging
from pathlib import Path
import threading
import time

from fragment_search.config import Settings, get_settings
from fragment_search.domain.fragment import Fragment
from fragment_search.domain.search import SearchHit, SearchResponse
from fragment_search.search.analyzers import StandardAnalyzer
from fragment_search.search.engine import QueryEngine, ScoredFragment, ScoringConfig, validate_page
from fragment_search.search.errors import IndexNotPublishedError
from fragment_search.search.index import BuildReport, IndexBuilder, InvertedIndex
from fragment_search.search.serializer import fingerprint, load_index
from fragment_search.search.snippet import build_smart_snippet


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishedIndex:
    """An index generation together with its identity."""

    index: InvertedIndex
    fingerprint: str
    generation: int
    published_at: datetime


class IndexPublisher:
    """Holds the published index reference and swaps it atomically."""

    def __init__(self) -> None:
        self._current: PublishedIndex | None = None
        self._generation = 0
        self._write_lock = threading.Lock()

    @property
    def is_published(self) -> bool:
        return self._current is not None

    def publish(self, index: InvertedIndex) -> PublishedIndex:
        digest = fingerprint(index)
        with self._write_lock:
            self._generation += 1
            published = PublishedIndex(
                index=index,
                fingerprint=digest,
                generation=self._generation,
                published_at=datetime.now(timezone.utc),
            )
            self._current = published
        logger.info(
            "Published index generation %d (%d fragments, fingerprint %s)",
            published.generation,
            index.fragment_count,
            digest[:12],
        )
        return published

    def current(self) -> PublishedIndex:
        published = self._current
        if published is None:
            raise IndexNotPublishedError("No index has been published yet")
        return published


class SearchService:
    """High-level build/publish/search API used by the CLI and embedding apps."""

    def __init__(
        self,
        *,
        publisher: IndexPublisher | None = None,
        engine: QueryEngine | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        # Build-time analyzer only; queries use the analyzer recorded in each index.
        self.analyzer = StandardAnalyzer(min_length=self.settings.min_token_length)
        self.publisher = publisher or IndexPublisher()
        self.engine = engine or QueryEngine(scoring=ScoringConfig(title_boost=self.settings.title_boost))

    def load(self, path: str | Path) -> PublishedIndex:
        """Load a persisted index and publish it.

        ``IncompatibleIndexFormatError`` propagates; the previously published
        generation (if any) stays in place.
        """

        return self.publisher.publish(load_index(path))

    def rebuild(
        self, fragments: Iterable[Fragment], *, workers: int | None = None
    ) -> tuple[PublishedIndex, BuildReport]:
        """Build a fresh index in isolation, then publish it."""

        builder = IndexBuilder(analyzer=self.analyzer, workers=workers or self.settings.build_workers)
        builder.add_fragments(fragments)
        index, report = builder.build_with_report()
        return self.publisher.publish(index), report

    def search(self, query: str, limit: int | None = None, offset: int = 0) -> list[ScoredFragment]:
        """Return one page of ranked fragments from the published index."""

        published = self.publisher.current()
        page_size = self.settings.default_limit if limit is None else limit
        return self.engine.search(published.index, query, page_size, offset)

    def search_response(self, query: str, limit: int | None = None, offset: int = 0) -> SearchResponse:
        """Like ``search`` but returns a display-ready response with snippets and totals."""

        page_size = self.settings.default_limit if limit is None else limit
        validate_page(page_size, offset)
        published = self.publisher.current()

        started = time.perf_counter()
        ranked = self.engine.rank(published.index, query)
        page = ranked[offset : offset + page_size]
        hits = [self._to_hit(rank, scored) for rank, scored in enumerate(page, start=offset + 1)]
        logger.debug(
            "Search %r: %d total, %d returned in %.2fms",
            query,
            len(ranked),
            len(hits),
            (time.perf_counter() - started) * 1000,
        )

        return SearchResponse(
            query=query,
            total_count=len(ranked),
            limit=page_size,
            offset=offset,
            index_fingerprint=published.fingerprint,
            results=hits,
        )

    def _to_hit(self, rank: int, scored: ScoredFragment) -> SearchHit:
        fragment = scored.fragment
        terms = sorted(scored.matched_terms)
        return SearchHit(
            rank=rank,
            fragment_id=fragment.id,
            location=fragment.location,
            page=fragment.page,
            title=fragment.title,
            category=fragment.category.value,
            score=scored.score,
            matched_terms=terms,
            snippet=build_smart_snippet(
                fragment.text,
                terms,
                max_chars=self.settings.snippet_max_chars,
                style=self.settings.snippet_style,
            ),
        )


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    """Return the process-wide search service."""
    return SearchService()
