"""Dialogue-anchored clip resolution.

Resolves a free-text quote to the subtitle entry it denotes and derives a
padded time range from one quote (``resolve_quote``) or a from/to pair
(``resolve_range``).

Matching is a cascade of tiers, each scanning every entry in track order:

1. Exact substring, case-insensitive
2. Query words appearing in order (survives caption reflow)
3. Best entry by number of query words present, if at least half match

The first tier to produce a match wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from pydantic import BaseModel, Field

from gifclip.errors import DialogueNotFoundError, InvalidRangeError
from gifclip.logging import get_logger
from gifclip.subtitles.parser import SubtitleEntry

logger = get_logger(__name__)

QUOTE_DEFAULT_PADDING = 2.0
RANGE_DEFAULT_PADDING = 0.5

Matcher = Callable[[Sequence[SubtitleEntry], str], SubtitleEntry | None]


@dataclass(frozen=True)
class ResolvedRange:
    """A clip time range in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


class Padding(BaseModel):
    """Seconds added around a resolved dialogue range.

    ``pad_before``/``pad_after`` take precedence over the symmetric ``pad``,
    which takes precedence over the mode default.
    """

    pad: float | None = Field(default=None, ge=0.0)
    pad_before: float | None = Field(default=None, ge=0.0)
    pad_after: float | None = Field(default=None, ge=0.0)

    def resolve(self, default: float) -> tuple[float, float]:
        """Return the effective (before, after) padding.

        Args:
            default: Mode default used when nothing else is set

        Returns:
            Tuple of (before, after) in seconds
        """
        symmetric = self.pad if self.pad is not None else default
        before = self.pad_before if self.pad_before is not None else symmetric
        after = self.pad_after if self.pad_after is not None else symmetric
        return before, after


def match_exact(entries: Sequence[SubtitleEntry], query: str) -> SubtitleEntry | None:
    """First entry containing the query as a substring, ignoring case."""
    query_lower = query.lower()
    for entry in entries:
        if query_lower in entry.text.lower():
            return entry
    return None


def _words_in_order(text: str, words: list[str]) -> bool:
    position = 0
    for word in words:
        found = text.find(word, position)
        if found == -1:
            return False
        position = found + len(word)
    return True


def match_ordered_words(entries: Sequence[SubtitleEntry], query: str) -> SubtitleEntry | None:
    """First entry containing every query word, in query order."""
    words = query.lower().split()
    for entry in entries:
        if _words_in_order(entry.text.lower(), words):
            return entry
    return None


def match_fuzzy_majority(entries: Sequence[SubtitleEntry], query: str) -> SubtitleEntry | None:
    """Entry sharing the most query words, if at least half of them.

    Ties keep the earliest entry. An entry with no matching words is never
    a candidate. The threshold uses floor division, so a one-word query is
    accepted on any single hit.
    """
    words = query.lower().split()

    best: SubtitleEntry | None = None
    best_count = 0
    for entry in entries:
        text = entry.text.lower()
        count = sum(1 for word in words if word in text)
        if count > best_count:
            best = entry
            best_count = count

    if best is not None and best_count >= len(words) // 2:
        return best
    return None


MATCH_TIERS: list[tuple[str, Matcher]] = [
    ("exact", match_exact),
    ("ordered_words", match_ordered_words),
    ("fuzzy_majority", match_fuzzy_majority),
]


def find_dialogue(entries: Sequence[SubtitleEntry], query: str) -> SubtitleEntry:
    """Find the subtitle entry a quote refers to.

    Args:
        entries: Parsed subtitle entries in track order
        query: Free-text quote (fragment, any case)

    Returns:
        The matched entry

    Raises:
        DialogueNotFoundError: If no tier matches
    """
    for tier, matcher in MATCH_TIERS:
        entry = matcher(entries, query)
        if entry is not None:
            logger.debug(
                f'Matched "{query}" via {tier}',
                extra={"tier": tier, "start": entry.start, "end": entry.end},
            )
            return entry

    raise DialogueNotFoundError(query)


def apply_padding(start: float, end: float, before: float, after: float) -> ResolvedRange:
    """Widen a range, clamping the start at zero.

    The end is not clamped; the transcoder stops at the end of the media.
    """
    return ResolvedRange(start=max(0.0, start - before), end=end + after)


def resolve_quote(
    entries: Sequence[SubtitleEntry],
    query: str,
    padding: Padding | None = None,
) -> ResolvedRange:
    """Resolve a single quote to a padded time range.

    Args:
        entries: Parsed subtitle entries
        query: Quote to look up
        padding: Padding overrides (defaults to 2.0s each side)

    Returns:
        ResolvedRange covering the matched entry
    """
    entry = find_dialogue(entries, query)
    before, after = (padding or Padding()).resolve(QUOTE_DEFAULT_PADDING)
    return apply_padding(entry.start, entry.end, before, after)


def resolve_range(
    entries: Sequence[SubtitleEntry],
    from_query: str,
    to_query: str,
    padding: Padding | None = None,
) -> ResolvedRange:
    """Resolve a from/to quote pair to a padded time range.

    Args:
        entries: Parsed subtitle entries
        from_query: Quote where the clip starts
        to_query: Quote where the clip ends
        padding: Padding overrides (defaults to 0.5s each side)

    Returns:
        ResolvedRange from the start of the first match to the end of the second

    Raises:
        DialogueNotFoundError: If either quote has no match
        InvalidRangeError: If the ``to`` match ends before the ``from`` match starts
    """
    from_entry = find_dialogue(entries, from_query)
    to_entry = find_dialogue(entries, to_query)

    if to_entry.end < from_entry.start:
        raise InvalidRangeError(from_entry, to_entry)

    before, after = (padding or Padding()).resolve(RANGE_DEFAULT_PADDING)
    return apply_padding(from_entry.start, to_entry.end, before, after)
