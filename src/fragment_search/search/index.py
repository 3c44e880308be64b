"""Inverted index construction for documentation fragments.

``IndexBuilder`` accepts fragments and produces an immutable ``InvertedIndex``
with postings and per-fragment length metadata. Title and body tokens of a
fragment share one position space: title tokens occupy ``0..T-1`` and body
tokens start at ``T + TITLE_POSITION_GAP``, so a posting position below the
fragment's title length is a title occurrence.

Builds are deterministic. The postings of every term are ordered by fragment
id and the vocabulary is sorted, so the same fragment sequence always
serializes to the same bytes.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging
import zlib

from fragment_search.domain.fragment import Fragment
from fragment_search.search.analyzers import Analyzer, AnalyzerConfig, StandardAnalyzer
from fragment_search.search.errors import MalformedFragmentError
from fragment_search.search.models import Posting
from fragment_search.search.stats import LengthStats, compute_length_stats


logger = logging.getLogger(__name__)

TITLE_POSITION_GAP = 100
FORMAT_VERSION = 1
DEFAULT_SHARD_COUNT = 16


@dataclass(frozen=True, slots=True)
class InvertedIndex:
    """Immutable token -> postings mapping plus the fragments it references.

    Instances are never mutated after ``IndexBuilder.build`` returns; a new
    generation is built from scratch whenever the fragments change.
    ``analyzer`` records how titles and bodies were tokenized; queries
    against this index must be analyzed the same way.
    """

    postings: dict[str, tuple[Posting, ...]]
    fragments: dict[int, Fragment]
    lengths: dict[int, int]
    title_lengths: dict[int, int]
    format_version: int = FORMAT_VERSION
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)

    @property
    def fragment_count(self) -> int:
        return len(self.fragments)

    @property
    def token_count(self) -> int:
        """Number of distinct tokens in the vocabulary."""
        return len(self.postings)

    def get_postings(self, token: str) -> tuple[Posting, ...]:
        return self.postings.get(token, ())

    def document_frequency(self, token: str) -> int:
        return len(self.postings.get(token, ()))

    def get_fragment(self, fragment_id: int) -> Fragment | None:
        return self.fragments.get(fragment_id)

    def title_length(self, fragment_id: int) -> int:
        return self.title_lengths.get(fragment_id, 0)

    def length_stats(self) -> LengthStats:
        return compute_length_stats(self.lengths.values())

    @classmethod
    def empty(cls) -> InvertedIndex:
        return cls(postings={}, fragments={}, lengths={}, title_lengths={})


@dataclass(frozen=True)
class AnalyzedFragment:
    """Token positions of one fragment, ready to be merged into postings."""

    fragment: Fragment
    term_positions: dict[str, list[int]]
    length: int
    title_length: int


@dataclass(frozen=True)
class BuildReport:
    """Outcome of an index build."""

    fragments_indexed: int
    fragments_skipped: int
    token_count: int
    warnings: tuple[str, ...] = field(default_factory=tuple)


def analyze_fragment(fragment: Fragment, analyzer: Analyzer) -> AnalyzedFragment:
    """Tokenize title and text separately and lay them out in one position space."""

    title_tokens = analyzer(fragment.title)
    body_tokens = analyzer(fragment.text)
    title_length = len(title_tokens)
    body_base = title_length + TITLE_POSITION_GAP

    term_positions: dict[str, list[int]] = defaultdict(list)
    for token in title_tokens:
        term_positions[token.text].append(token.position)
    for token in body_tokens:
        term_positions[token.text].append(body_base + token.position)

    return AnalyzedFragment(
        fragment=fragment,
        term_positions=dict(term_positions),
        length=title_length + len(body_tokens),
        title_length=title_length,
    )


def shard_for(term: str, shard_count: int) -> int:
    """Stable shard assignment (CRC32, independent of ``PYTHONHASHSEED``)."""

    return zlib.crc32(term.encode("utf-8")) % shard_count


def _assemble_postings(entries: Iterable[tuple[str, int, list[int]]]) -> dict[str, list[Posting]]:
    postings: dict[str, list[Posting]] = defaultdict(list)
    for term, fragment_id, positions in entries:
        postings[term].append(Posting.of(fragment_id, positions))
    return postings


class IndexBuilder:
    """Builds inverted indexes from documentation fragments.

    Malformed fragments (missing location, empty title and text, duplicate
    id) are skipped with a logged warning; they never abort the build.
    With ``workers > 1`` fragments are analyzed in a thread pool and postings
    are assembled per token-hash shard; the result is identical to a
    sequential build.
    """

    def __init__(
        self,
        *,
        analyzer: Analyzer | None = None,
        workers: int = 1,
        shard_count: int = DEFAULT_SHARD_COUNT,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        if shard_count < 1:
            raise ValueError("shard_count must be >= 1")
        self.analyzer = analyzer or StandardAnalyzer()
        if not isinstance(getattr(self.analyzer, "config", None), AnalyzerConfig):
            raise ValueError("analyzer must expose an AnalyzerConfig as .config")
        self.workers = workers
        self.shard_count = shard_count
        self._pending: list[Fragment] = []
        self._seen_ids: set[int] = set()
        self._warnings: list[str] = []
        self._skipped = 0

    def add_fragment(self, fragment: Fragment) -> bool:
        """Queue ``fragment`` for indexing; return False when it was skipped."""

        try:
            fragment.validate()
            if fragment.id in self._seen_ids:
                raise MalformedFragmentError(
                    "duplicate fragment id", location=fragment.location, fragment_id=fragment.id
                )
        except MalformedFragmentError as exc:
            self._skipped += 1
            self._warnings.append(str(exc))
            logger.warning("Skipping fragment: %s", exc)
            return False

        self._seen_ids.add(fragment.id)
        self._pending.append(fragment)
        return True

    def add_fragments(self, fragments: Iterable[Fragment]) -> int:
        return sum(1 for fragment in fragments if self.add_fragment(fragment))

    def build(self) -> InvertedIndex:
        index, _report = self.build_with_report()
        return index

    def build_with_report(self) -> tuple[InvertedIndex, BuildReport]:
        ordered = sorted(self._pending, key=lambda fragment: fragment.id)
        analyzed = self._analyze(ordered)

        if self.workers > 1:
            postings = self._merge_sharded(analyzed)
        else:
            postings = self._merge_sequential(analyzed)

        index = InvertedIndex(
            postings=postings,
            fragments={item.fragment.id: item.fragment for item in analyzed},
            lengths={item.fragment.id: item.length for item in analyzed},
            title_lengths={item.fragment.id: item.title_length for item in analyzed},
            analyzer=self.analyzer.config,
        )
        report = BuildReport(
            fragments_indexed=index.fragment_count,
            fragments_skipped=self._skipped,
            token_count=index.token_count,
            warnings=tuple(self._warnings),
        )
        logger.info(
            "Built index: %d fragments, %d tokens, %d skipped",
            report.fragments_indexed,
            report.token_count,
            report.fragments_skipped,
        )
        return index, report

    # --- internal helpers -------------------------------------------------

    def _analyze(self, fragments: Sequence[Fragment]) -> list[AnalyzedFragment]:
        if self.workers == 1 or len(fragments) < 2:
            return [analyze_fragment(fragment, self.analyzer) for fragment in fragments]
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            return list(executor.map(lambda fragment: analyze_fragment(fragment, self.analyzer), fragments))

    def _merge_sequential(self, analyzed: Sequence[AnalyzedFragment]) -> dict[str, tuple[Posting, ...]]:
        postings = _assemble_postings(
            (term, item.fragment.id, positions) for item in analyzed for term, positions in item.term_positions.items()
        )
        return {term: tuple(postings[term]) for term in sorted(postings)}

    def _merge_sharded(self, analyzed: Sequence[AnalyzedFragment]) -> dict[str, tuple[Posting, ...]]:
        # Routing walks fragments in id order, so each shard's entries stay id-ordered.
        shards: list[list[tuple[str, int, list[int]]]] = [[] for _ in range(self.shard_count)]
        for item in analyzed:
            for term, positions in item.term_positions.items():
                shards[shard_for(term, self.shard_count)].append((term, item.fragment.id, positions))

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            shard_postings = list(executor.map(_assemble_postings, shards))

        combined: dict[str, list[Posting]] = {}
        for partial in shard_postings:
            combined.update(partial)  # shards partition the vocabulary, so keys never collide
        return {term: tuple(combined[term]) for term in sorted(combined)}


def build_index(
    fragments: Iterable[Fragment],
    *,
    analyzer: Analyzer | None = None,
    workers: int = 1,
) -> InvertedIndex:
    """Build an inverted index from ``fragments`` in one call."""

    builder = IndexBuilder(analyzer=analyzer, workers=workers)
    builder.add_fragments(fragments)
    return builder.build()


def postings_by_term(index: InvertedIndex, terms: Iterable[str]) -> Mapping[str, tuple[Posting, ...]]:
    """Return the postings of each distinct known term, preserving query order."""

    resolved: dict[str, tuple[Posting, ...]] = {}
    for term in terms:
        if term in resolved:
            continue
        postings = index.get_postings(term)
        if postings:
            resolved[term] = postings
    return resolved
