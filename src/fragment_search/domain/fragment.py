"""Fragment value objects.

A fragment is one indexable unit of documentation text tied to a page
location, exactly as emitted by the documentation generator. Fragments are
immutable; a fragment collection is replaced as a whole when the
documentation changes.

Field types are enforced by pydantic at construction. Whether a fragment is
worth indexing (some title or text) is checked separately by ``validate`` so
builders can skip such fragments with a warning instead of failing.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any

from pydantic import Field, ValidationError
from pydantic.dataclasses import dataclass

from fragment_search.search.errors import MalformedFragmentError


class FragmentCategory(str, Enum):
    """Kinds of fragment emitted by the documentation generator."""

    SECTION = "section"
    PAGE = "page"
    TEXT = "text"


@dataclass(frozen=True)
class Fragment:
    """One documentation fragment with its ingestion-assigned id.

    ``location`` may be the empty string (the documentation root page).
    """

    id: Annotated[int, Field(ge=0, strict=True)]
    location: str
    page: str
    title: str
    text: str
    category: FragmentCategory

    def validate(self) -> None:
        """Raise ``MalformedFragmentError`` if this fragment cannot be indexed."""

        if not self.title.strip() and not self.text.strip():
            raise MalformedFragmentError(
                "title and text are both empty",
                location=self.location,
                fragment_id=self.id,
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "location": self.location,
            "page": self.page,
            "title": self.title,
            "text": self.text,
            "category": self.category.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Fragment:
        return cls(
            id=data["id"],
            location=data["location"],
            page=data.get("page", ""),
            title=data.get("title", ""),
            text=data.get("text", ""),
            category=data["category"],
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any], fragment_id: int) -> Fragment:
        """Create a fragment from a raw generator record, validating it on the way.

        Absent or null ``page``/``title``/``text`` become empty strings and an
        absent category means ``page``. ``location`` must be present.
        """

        if not isinstance(record, Mapping):
            raise MalformedFragmentError(f"expected an object, got {type(record).__name__}", fragment_id=fragment_id)

        location = record.get("location")
        if location is None:
            raise MalformedFragmentError("missing location", fragment_id=fragment_id)

        try:
            fragment = cls(
                id=fragment_id,
                location=location,
                page=_text_field(record, "page"),
                title=_text_field(record, "title"),
                text=_text_field(record, "text"),
                category=record.get("category") or FragmentCategory.PAGE,
            )
        except ValidationError as exc:
            raise MalformedFragmentError(
                _describe_errors(exc),
                location=location if isinstance(location, str) else None,
                fragment_id=fragment_id,
            ) from exc

        fragment.validate()
        return fragment


def _text_field(record: Mapping[str, Any], name: str) -> Any:
    value = record.get(name)
    return "" if value is None else value


def _describe_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"invalid {'.'.join(str(part) for part in error['loc']) or 'record'}: {error['msg']}" for error in exc.errors()
    )
