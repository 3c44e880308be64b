"""
Fragment indexing and query engine package.

This package provides a pure-Python search stack:
- analyzers: Tokenizer and filters (lowercase, min length, stopwords)
- fragment_store: Fragment collection and generator data file loaders
- index: Inverted index construction
- stats: TF-IDF scoring helpers
- engine: Query scoring, ranking and pagination
- serializer: Versioned index persistence
- snippet: Result previews with highlighted terms
"""
