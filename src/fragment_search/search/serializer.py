"""Versioned persistence for inverted indexes.

Indexes are stored as minified JSON with sorted keys so the same index always
serializes to the same bytes. Every payload starts with a format tag and a
version; readers refuse anything else with ``IncompatibleIndexFormatError``
instead of guessing.

Payload layout::

    {
      "format": "fragment-search-index",
      "version": 1,
      "analyzer": {"name": "standard", "min_length": 2, "stopwords": [...]},
      "fragments": [{"id": 0, "location": ..., "category": "section"}, ...],
      "lengths": [[fragment_id, length, title_length], ...],
      "postings": {"token": [[fragment_id, [positions...]], ...], ...}
    }
"""

from __future__ import annotations

from collections.abc import Mapping
import hashlib
import logging
from pathlib import Path
from typing import Any

import orjson

from fragment_search.domain.fragment import Fragment
from fragment_search.search.analyzers import AnalyzerConfig
from fragment_search.search.errors import IncompatibleIndexFormatError
from fragment_search.search.index import FORMAT_VERSION, InvertedIndex
from fragment_search.search.models import Posting


logger = logging.getLogger(__name__)

FORMAT_TAG = "fragment-search-index"
_DUMP_OPTIONS = orjson.OPT_SORT_KEYS


def index_to_dict(index: InvertedIndex) -> dict[str, Any]:
    return {
        "format": FORMAT_TAG,
        "version": index.format_version,
        "analyzer": index.analyzer.to_dict(),
        "fragments": [fragment.to_dict() for fragment in index.fragments.values()],
        "lengths": [
            [fragment_id, length, index.title_lengths.get(fragment_id, 0)]
            for fragment_id, length in index.lengths.items()
        ],
        "postings": {term: [posting.to_list() for posting in postings] for term, postings in index.postings.items()},
    }


def _expect(value: Any, what: str, expected: type) -> Any:
    if not isinstance(value, expected):
        raise TypeError(f"{what} must be a {expected.__name__}, got {type(value).__name__}")
    return value


def index_from_dict(data: Mapping[str, Any]) -> InvertedIndex:
    found_format = data.get("format")
    found_version = data.get("version")
    if found_format != FORMAT_TAG:
        msg = f"Unrecognized index format {found_format!r}; expected {FORMAT_TAG!r}"
        raise IncompatibleIndexFormatError(msg, found_format=found_format, found_version=found_version)
    # bool and float compare equal to 1, so the type is checked too
    if type(found_version) is not int or found_version != FORMAT_VERSION:
        msg = f"Unsupported index format version {found_version!r}; this build reads version {FORMAT_VERSION}"
        raise IncompatibleIndexFormatError(msg, found_format=found_format, found_version=found_version)

    try:
        analyzer = AnalyzerConfig.from_dict(_expect(data["analyzer"], "analyzer", Mapping))
        analyzer.create()

        fragments: dict[int, Fragment] = {}
        for entry in _expect(data["fragments"], "fragments", list):
            fragment = Fragment.from_dict(_expect(entry, "fragment entry", Mapping))
            fragments[fragment.id] = fragment

        lengths: dict[int, int] = {}
        title_lengths: dict[int, int] = {}
        for fragment_id, length, title_length in _expect(data["lengths"], "lengths", list):
            lengths[int(fragment_id)] = int(length)
            title_lengths[int(fragment_id)] = int(title_length)

        postings = {
            str(term): tuple(Posting.from_list(entry) for entry in _expect(entries, f"postings for {term!r}", list))
            for term, entries in _expect(data["postings"], "postings", Mapping).items()
        }
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        msg = f"Index payload is corrupt: {exc}"
        raise IncompatibleIndexFormatError(msg, found_format=found_format, found_version=found_version) from exc

    for term, entries in postings.items():
        for posting in entries:
            if posting.fragment_id not in fragments:
                msg = f"Posting for {term!r} references unknown fragment {posting.fragment_id}"
                raise IncompatibleIndexFormatError(msg, found_format=found_format, found_version=found_version)
            if not posting.positions:
                msg = f"Posting for {term!r} in fragment {posting.fragment_id} has no positions"
                raise IncompatibleIndexFormatError(msg, found_format=found_format, found_version=found_version)

    return InvertedIndex(
        postings=postings,
        fragments=fragments,
        lengths=lengths,
        title_lengths=title_lengths,
        format_version=found_version,
        analyzer=analyzer,
    )


def serialize(index: InvertedIndex) -> bytes:
    """Return the canonical byte form of ``index``."""

    return orjson.dumps(index_to_dict(index), option=_DUMP_OPTIONS)


def deserialize(data: bytes | str) -> InvertedIndex:
    """Rebuild an index from ``serialize`` output, failing fast on foreign formats."""

    try:
        payload = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise IncompatibleIndexFormatError(f"Index payload is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise IncompatibleIndexFormatError(f"Index payload must be an object, got {type(payload).__name__}")
    return index_from_dict(payload)


def fingerprint(index: InvertedIndex) -> str:
    """SHA-256 digest of the serialized index; identifies an index generation."""

    return hashlib.sha256(serialize(index)).hexdigest()


def save_index(index: InvertedIndex, path: str | Path) -> Path:
    """Atomically write ``index`` to ``path`` (temp file + rename)."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_name(target.name + ".tmp")
    tmp_path.write_bytes(serialize(index))
    tmp_path.replace(target)
    logger.info("Saved index with %d fragments to %s", index.fragment_count, target)
    return target


def load_index(path: str | Path) -> InvertedIndex:
    source = Path(path)
    index = deserialize(source.read_bytes())
    logger.info("Loaded index with %d fragments from %s", index.fragment_count, source)
    return index
