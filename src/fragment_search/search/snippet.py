"""Snippet extraction with sentence-boundary awareness.

Builds short previews of a fragment's text for search result listings:

- tries to start and end on sentence boundaries,
- falls back to word boundaries when no sentence boundary is near,
- highlights matched terms as ``[[term]]`` or ``<mark>term</mark>``.
"""

from __future__ import annotations

from collections.abc import Sequence
import re


SENTENCE_END_PATTERN = re.compile(r"[.!?]\s+")
WORD_BOUNDARY_PATTERN = re.compile(r"\s+")


def _whole_word_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![^\W_]){re.escape(term)}(?![^\W_])", re.IGNORECASE)


def find_sentence_start(text: str, position: int, max_lookback: int = 200) -> int:
    """Return the index where the sentence containing ``position`` starts."""
    if position == 0:
        return 0

    start_search = max(0, position - max_lookback)
    search_text = text[start_search:position]

    matches = list(SENTENCE_END_PATTERN.finditer(search_text))
    if matches:
        return start_search + matches[-1].end()

    quarter_pos = len(search_text) // 4
    for match in WORD_BOUNDARY_PATTERN.finditer(search_text):
        if match.start() >= quarter_pos:
            return start_search + match.end()

    return start_search


def find_sentence_end(text: str, position: int, max_lookahead: int = 200) -> int:
    """Return the index just past the sentence containing ``position``."""
    if position >= len(text):
        return len(text)

    end_search = min(len(text), position + max_lookahead)
    search_text = text[position:end_search]

    match = SENTENCE_END_PATTERN.search(search_text)
    if match:
        return position + match.end()

    three_quarter_pos = (len(search_text) * 3) // 4
    for word in reversed(list(WORD_BOUNDARY_PATTERN.finditer(search_text))):
        if word.start() <= three_quarter_pos:
            return position + word.start()

    return end_search


def extract_sentence_snippet(
    text: str,
    match_position: int,
    match_length: int,
    max_chars: int = 200,
    surrounding_context: int = 80,
) -> str:
    """Cut a snippet around a match, widened to sentence boundaries when they fit."""
    if not text:
        return ""

    initial_start = max(0, match_position - surrounding_context)
    initial_end = min(len(text), match_position + match_length + surrounding_context)

    start = find_sentence_start(text, initial_start, max_lookback=surrounding_context)
    end = find_sentence_end(text, initial_end, max_lookahead=surrounding_context)

    if end - start > max_chars:
        half_max = max_chars // 2
        center = match_position + (match_length // 2)
        start = max(0, center - half_max)
        end = min(len(text), center + half_max)

    return text[start:end].strip()


def highlight_terms_in_snippet(
    snippet: str,
    terms: Sequence[str],
    style: str = "plain",
    max_highlights: int = 3,
) -> str:
    """Wrap up to ``max_highlights`` whole-word term matches in highlight markers."""
    if not snippet or not terms:
        return snippet

    matches: list[tuple[int, int]] = []
    for term in terms:
        if not term:
            continue
        matches.extend((match.start(), match.end()) for match in _whole_word_pattern(term).finditer(snippet))

    if not matches:
        return snippet

    matches.sort(key=lambda span: (span[0], -(span[1] - span[0])))
    selected: list[tuple[int, int]] = []
    for start, end in matches:
        if any(start < chosen_end and end > chosen_start for chosen_start, chosen_end in selected):
            continue
        selected.append((start, end))
        if len(selected) >= max_highlights:
            break

    result = snippet
    for start, end in sorted(selected, reverse=True):
        matched_text = result[start:end]
        replacement = f"<mark>{matched_text}</mark>" if style == "html" else f"[[{matched_text}]]"
        result = result[:start] + replacement + result[end:]
    return result


def build_smart_snippet(
    text: str,
    terms: Sequence[str],
    max_chars: int = 200,
    style: str = "plain",
) -> str:
    """Build a highlighted snippet centred on the earliest whole-word term match."""
    if not text:
        return ""

    if not terms:
        return text[:max_chars].strip()

    best: re.Match[str] | None = None
    for term in terms:
        if not term:
            continue
        match = _whole_word_pattern(term).search(text)
        if match and (best is None or match.start() < best.start()):
            best = match

    if best is None:
        return text[:max_chars].strip()

    snippet = extract_sentence_snippet(text, best.start(), best.end() - best.start(), max_chars=max_chars)
    return highlight_terms_in_snippet(snippet, terms, style=style)
