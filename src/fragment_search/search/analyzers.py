"""Analyzer utilities for fragment tokenization.

Analyzers are composed from a tokenizer and a chain of token filters in the
style of Whoosh. The same analyzer is used at build time and at query time so
the query vocabulary always lines up with the indexed vocabulary.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, MutableMapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
import re
from typing import Any, Protocol


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int
    attributes: MutableMapping[str, Any] = field(default_factory=dict)

    def copy_with(self, **updates: Any) -> Token:
        data = {
            "text": self.text,
            "position": self.position,
            "start_char": self.start_char,
            "end_char": self.end_char,
            "attributes": dict(self.attributes),
        }
        data.update(updates)
        return Token(**data)


class Analyzer(Protocol):
    """Protocol implemented by analyzers.

    ``config`` describes how to rebuild an equivalent analyzer; indexes
    persist it.
    """

    config: AnalyzerConfig

    def __call__(self, text: str) -> list[Token]:  # pragma: no cover - interface definition
        ...


class Tokenizer(Protocol):
    """Protocol implemented by tokenizers."""

    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Regex-based tokenizer that yields alphanumeric runs.

    The default pattern treats every non-alphanumeric character (underscore
    included) as a boundary, so ``@code_warntype`` yields ``code`` and
    ``warntype``.
    """

    def __init__(self, pattern: str = r"[^\W_]+", flags: int = re.UNICODE | re.MULTILINE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class LowercaseFilter:
    """Filter that case-folds token text."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            folded = token.text.casefold()
            if folded == token.text:
                yield token
            else:
                yield token.copy_with(text=folded)


class MinLengthFilter:
    """Drops tokens shorter than ``min_length`` characters."""

    def __init__(self, min_length: int = 2) -> None:
        if min_length < 1:
            raise ValueError("min_length must be >= 1")
        self.min_length = min_length

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if len(token.text) >= self.min_length:
                yield token


DEFAULT_STOPWORDS = [
    "a",
    "an",
    "and",
    "are",
    "as",
    "at",
    "be",
    "but",
    "by",
    "for",
    "if",
    "in",
    "into",
    "is",
    "it",
    "no",
    "not",
    "of",
    "on",
    "or",
    "such",
    "that",
    "the",
    "their",
    "then",
    "there",
    "these",
    "they",
    "this",
    "to",
    "was",
    "will",
    "with",
]


class StopFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Sequence[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOPWORDS
        self.stopwords = frozenset(word.casefold() for word in vocab)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text.casefold() not in self.stopwords:
                yield token


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters)."""

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def __call__(self, text: str) -> list[Token]:
        if not text:
            return []
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        tokens = list(stream)
        for idx, token in enumerate(tokens):  # normalize positions post-filtering
            token.position = idx
        return tokens


@dataclass(frozen=True)
class AnalyzerConfig:
    """Everything needed to recreate an analyzer.

    Persisted with every index so queries are analyzed exactly like the
    fragments were, whatever the query process is configured with.
    """

    name: str = "standard"
    min_length: int = 2
    stopwords: tuple[str, ...] = tuple(DEFAULT_STOPWORDS)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "min_length": self.min_length, "stopwords": list(self.stopwords)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AnalyzerConfig:
        name = data["name"]
        min_length = data["min_length"]
        stopwords = data["stopwords"]
        if not isinstance(name, str):
            raise TypeError(f"analyzer name must be a string, got {type(name).__name__}")
        if type(min_length) is not int:
            raise TypeError(f"analyzer min_length must be an integer, got {type(min_length).__name__}")
        if not isinstance(stopwords, list) or not all(isinstance(word, str) for word in stopwords):
            raise TypeError("analyzer stopwords must be a list of strings")
        return cls(name=name, min_length=min_length, stopwords=tuple(stopwords))

    def create(self) -> Analyzer:
        return get_analyzer(self.name, min_length=self.min_length, stopwords=self.stopwords)


class StandardAnalyzer:
    """Default analyzer used for fragment titles, bodies and queries.

    Lower-cases, splits on non-alphanumeric boundaries, then drops short
    tokens and stopwords. No stemming is applied: ``variables`` and
    ``variable`` are distinct terms.
    """

    def __init__(
        self,
        *,
        stopwords: Sequence[str] | None = None,
        min_length: int = 2,
    ) -> None:
        stop_filter = StopFilter(stopwords)
        filters: list[TokenFilter] = [LowercaseFilter(), MinLengthFilter(min_length), stop_filter]
        self.min_length = min_length
        self.pipeline = AnalyzerPipeline(RegexTokenizer(), filters)
        self.config = AnalyzerConfig(
            name="standard",
            min_length=min_length,
            stopwords=tuple(sorted(stop_filter.stopwords)),
        )

    def __call__(self, text: str) -> list[Token]:
        return self.pipeline(text)


_ANALYZER_FACTORIES: dict[str, Callable[..., Analyzer]] = {
    "standard": StandardAnalyzer,
}


def get_analyzer(name: str | None = None, **options: Any) -> Analyzer:
    """Return analyzer by name, defaulting to the standard analyzer.

    ``options`` are passed to the analyzer factory (``min_length``,
    ``stopwords`` for the standard analyzer).
    """

    normalized = (name or "standard").lower()
    if normalized not in _ANALYZER_FACTORIES:
        msg = f"Unknown analyzer '{name}'. Available: {sorted(_ANALYZER_FACTORIES)}"
        raise ValueError(msg)
    return _ANALYZER_FACTORIES[normalized](**options)


@lru_cache(maxsize=16)
def analyzer_for(config: AnalyzerConfig) -> Analyzer:
    """Return a shared analyzer instance for ``config``."""

    return config.create()


_DEFAULT_ANALYZER = StandardAnalyzer()


def tokenize(text: str, analyzer: Analyzer | None = None) -> list[tuple[str, int]]:
    """Return ``(token, offset)`` pairs for ``text`` in document order.

    Pure and deterministic; empty text yields an empty list.
    """

    active = analyzer if analyzer is not None else _DEFAULT_ANALYZER
    return [(token.text, token.position) for token in active(text or "")]
