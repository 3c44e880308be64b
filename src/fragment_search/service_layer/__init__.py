"""Service layer: index publication and the serve-time search API."""

from .search_service import IndexPublisher, PublishedIndex, SearchService, get_search_service


__all__ = [
    "IndexPublisher",
    "PublishedIndex",
    "SearchService",
    "get_search_service",
]
