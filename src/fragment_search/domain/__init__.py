"""Domain layer: fragment value objects and search response models.

No dependencies on indexing or persistence infrastructure live here.
"""

from fragment_search.domain.fragment import Fragment, FragmentCategory
from fragment_search.domain.search import SearchHit, SearchResponse


__all__ = [
    "Fragment",
    "FragmentCategory",
    "SearchHit",
    "SearchResponse",
]
