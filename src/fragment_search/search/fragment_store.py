"""Fragment store and loaders for generator data files.

The documentation generator publishes its fragments as a JavaScript data file::

    var documenterSearchIndex = {"docs":
    [{"location":"...","page":"...","title":"...","text":"...","category":"section"}, ...]
    }

``load_fragment_file`` accepts that wrapper, a bare ``{"docs": [...]}`` JSON
object, or a bare JSON array. ``FragmentStore`` assigns dense ids in input
order to every record that validates, skipping (and logging) the rest.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from typing import Any, overload

import orjson

from fragment_search.domain.fragment import Fragment
from fragment_search.search.errors import FragmentSourceError, MalformedFragmentError


logger = logging.getLogger(__name__)

_JS_ASSIGNMENT_PATTERN = re.compile(r"^\s*(?:var|let|const)\s+[A-Za-z_$][\w$]*\s*=\s*")


@dataclass(frozen=True)
class IngestReport:
    """Outcome of turning raw records into fragments."""

    accepted: int
    skipped: int
    warnings: tuple[str, ...] = field(default_factory=tuple)


class FragmentStore(Sequence[Fragment]):
    """Ordered, read-only collection of fragments keyed by dense integer id."""

    __slots__ = ("_fragments", "report")

    def __init__(self, fragments: Iterable[Fragment] = (), *, report: IngestReport | None = None) -> None:
        ordered = tuple(fragments)
        for expected_id, fragment in enumerate(ordered):
            if fragment.id != expected_id:
                msg = f"Fragment ids must be dense and ordered; expected {expected_id}, got {fragment.id}"
                raise ValueError(msg)
        self._fragments = ordered
        self.report = report or IngestReport(accepted=len(ordered), skipped=0)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> FragmentStore:
        """Validate raw generator records and assign ids to the survivors."""

        fragments: list[Fragment] = []
        warnings: list[str] = []
        skipped = 0
        for index, record in enumerate(records):
            try:
                fragment = Fragment.from_record(record, len(fragments))
            except MalformedFragmentError as exc:
                skipped += 1
                message = f"record {index}: {exc.reason}"
                warnings.append(message)
                logger.warning("Skipping malformed fragment record %d: %s", index, exc.reason)
                continue
            fragments.append(fragment)

        report = IngestReport(accepted=len(fragments), skipped=skipped, warnings=tuple(warnings))
        logger.info("Ingested %d fragments (%d skipped)", report.accepted, report.skipped)
        return cls(fragments, report=report)

    @classmethod
    def from_file(cls, path: str | Path) -> FragmentStore:
        return cls.from_records(load_fragment_file(path))

    @overload
    def __getitem__(self, index: int) -> Fragment: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Fragment]: ...

    def __getitem__(self, index: int | slice) -> Fragment | Sequence[Fragment]:
        return self._fragments[index]

    def __len__(self) -> int:
        return len(self._fragments)

    def __iter__(self) -> Iterator[Fragment]:
        return iter(self._fragments)

    def get(self, fragment_id: int) -> Fragment | None:
        if 0 <= fragment_id < len(self._fragments):
            return self._fragments[fragment_id]
        return None

    def pages(self) -> list[str]:
        """Return distinct page names in first-seen order."""

        seen: dict[str, None] = {}
        for fragment in self._fragments:
            seen.setdefault(fragment.page, None)
        return list(seen)


def parse_fragment_payload(raw: bytes | str) -> list[Mapping[str, Any]]:
    """Decode a generator data file into a list of raw fragment records."""

    text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
    body = text.strip()
    match = _JS_ASSIGNMENT_PATTERN.match(body)
    if match:
        body = body[match.end() :].rstrip().removesuffix(";").rstrip()

    if not body:
        raise FragmentSourceError("Fragment data is empty")

    try:
        payload = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise FragmentSourceError(f"Fragment data is not valid JSON: {exc}") from exc

    if isinstance(payload, Mapping):
        docs = payload.get("docs")
        if not isinstance(docs, list):
            raise FragmentSourceError("Fragment data object has no 'docs' array")
        return docs
    if isinstance(payload, list):
        return payload
    raise FragmentSourceError(f"Unsupported fragment data payload: {type(payload).__name__}")


def load_fragment_file(path: str | Path) -> list[Mapping[str, Any]]:
    """Read and decode a fragment data file (``search_index.js`` or JSON)."""

    source = Path(path)
    try:
        raw = source.read_bytes()
    except OSError as exc:
        raise FragmentSourceError(f"Cannot read fragment data {source}: {exc}") from exc
    records = parse_fragment_payload(raw)
    logger.debug("Loaded %d fragment records from %s", len(records), source)
    return records
