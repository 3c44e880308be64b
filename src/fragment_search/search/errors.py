"""Typed errors raised by the fragment search stack.

Build-time problems with a single fragment are recoverable and only ever
logged by the builder. Format and parameter errors propagate to the caller.
"""

from __future__ import annotations


class SearchIndexError(Exception):
    """Base class for every error raised by the search stack."""


class MalformedFragmentError(SearchIndexError, ValueError):
    """Raised when a fragment record cannot be indexed."""

    def __init__(self, reason: str, *, location: str | None = None, fragment_id: int | None = None) -> None:
        self.reason = reason
        self.location = location
        self.fragment_id = fragment_id
        where = []
        if fragment_id is not None:
            where.append(f"id={fragment_id}")
        if location is not None:
            where.append(f"location={location!r}")
        suffix = f" ({', '.join(where)})" if where else ""
        super().__init__(f"Malformed fragment{suffix}: {reason}")


class FragmentSourceError(SearchIndexError):
    """Raised when a fragment data file cannot be read or parsed as a whole."""


class IncompatibleIndexFormatError(SearchIndexError):
    """Raised when a persisted index was written in a format this build cannot read."""

    def __init__(self, message: str, *, found_format: object = None, found_version: object = None) -> None:
        self.found_format = found_format
        self.found_version = found_version
        super().__init__(message)


class InvalidQueryParameterError(SearchIndexError, ValueError):
    """Raised when ``limit`` or ``offset`` violate the query contract."""


class IndexNotPublishedError(SearchIndexError):
    """Raised when a query arrives before any index generation was published."""
