"""Build-time indexing and read-time full-text search for documentation fragments."""

from fragment_search.domain.fragment import Fragment, FragmentCategory
from fragment_search.search.analyzers import AnalyzerConfig, StandardAnalyzer
from fragment_search.search.engine import QueryEngine, ScoredFragment, ScoringConfig, search
from fragment_search.search.errors import (
    FragmentSourceError,
    IncompatibleIndexFormatError,
    IndexNotPublishedError,
    InvalidQueryParameterError,
    MalformedFragmentError,
    SearchIndexError,
)
from fragment_search.search.fragment_store import FragmentStore
from fragment_search.search.index import IndexBuilder, InvertedIndex, build_index
from fragment_search.search.serializer import deserialize, load_index, save_index, serialize


__version__ = "0.1.0"

__all__ = [
    "AnalyzerConfig",
    "Fragment",
    "FragmentCategory",
    "FragmentSourceError",
    "FragmentStore",
    "IncompatibleIndexFormatError",
    "IndexBuilder",
    "IndexNotPublishedError",
    "InvalidQueryParameterError",
    "InvertedIndex",
    "MalformedFragmentError",
    "QueryEngine",
    "ScoredFragment",
    "ScoringConfig",
    "SearchIndexError",
    "StandardAnalyzer",
    "build_index",
    "deserialize",
    "load_index",
    "save_index",
    "search",
    "serialize",
]
