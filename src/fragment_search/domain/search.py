"""Presentation models for search responses.

These value objects are what the CLI and any embedding application hand to
users: a flattened view of a ranked fragment plus a display snippet.
"""

from pydantic import BaseModel, ConfigDict, Field


class SearchHit(BaseModel):
    """Value object for a single ranked fragment, ready for display."""

    model_config = ConfigDict(frozen=True)

    rank: int = Field(ge=1)
    fragment_id: int
    location: str
    page: str
    title: str
    category: str
    score: float
    matched_terms: list[str] = Field(default_factory=list)
    snippet: str = ""


class SearchResponse(BaseModel):
    """Value object for one page of search results."""

    model_config = ConfigDict(frozen=True)

    query: str
    total_count: int = Field(ge=0)
    limit: int = Field(ge=1)
    offset: int = Field(ge=0)
    index_fingerprint: str
    results: list[SearchHit] = Field(default_factory=list)
