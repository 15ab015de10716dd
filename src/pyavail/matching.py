"""Approximate matching of catalog rows against a model-number query.

The score is an ordered-subsequence alignment score in the style of
skim/fzf, not an edit distance: every character of the pattern must
appear in the choice in order, and the alignment is rewarded for runs of
adjacent matches and for starting near the left edge of the choice.
"""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import unquote

from pyavail.exceptions import AvailParseError
from pyavail.models.catalog import CatalogRecord

SCORE_MATCH = 16
BONUS_CONSECUTIVE = 8
BONUS_LEADING = 8
PENALTY_GAP_START = 3
PENALTY_GAP_EXTENSION = 1

_UNREACHABLE = float("-inf")


def normalize(text: str) -> str:
    """Lowercase and drop all whitespace."""
    return "".join(ch for ch in text.lower().strip() if not ch.isspace())


def normalize_query(query: str) -> str:
    """URL-decode, then :func:`normalize`.

    Raises
    ------
    AvailParseError
        If the percent-escapes do not decode to UTF-8.
    """
    try:
        decoded = unquote(query, errors="strict")
    except UnicodeDecodeError as exc:
        raise AvailParseError(f"Cannot decode model number {query!r}.") from exc
    return normalize(decoded)


def fuzzy_match(choice: str, pattern: str) -> int:
    """Score how well *pattern* aligns, in order, inside *choice*.

    Returns ``0`` when *pattern* is empty or is not a subsequence of
    *choice*; otherwise the best alignment score, never negative.
    """
    if not pattern or len(pattern) > len(choice):
        return 0

    n = len(choice)
    prev: list[float] = [_UNREACHABLE] * n
    for j, ch in enumerate(choice):
        if ch == pattern[0]:
            prev[j] = SCORE_MATCH + max(0, BONUS_LEADING - j)

    for p_ch in pattern[1:]:
        cur: list[float] = [_UNREACHABLE] * n
        # best prev[k] - gap penalty for k <= j - 2, carried along j
        gap_best = _UNREACHABLE
        for j in range(1, n):
            if j >= 2:
                gap_best = max(gap_best - PENALTY_GAP_EXTENSION, prev[j - 2] - PENALTY_GAP_START)
            if choice[j] != p_ch:
                continue
            best = max(prev[j - 1] + BONUS_CONSECUTIVE, gap_best)
            if best != _UNREACHABLE:
                cur[j] = best + SCORE_MATCH
        prev = cur

    result = max(prev)
    if result == _UNREACHABLE:
        return 0
    return max(0, int(result))


def score_record(record: CatalogRecord, normalized_query: str) -> int:
    """Model-number score plus description score."""
    return fuzzy_match(normalize(record.model_number), normalized_query) + fuzzy_match(
        normalize(record.description), normalized_query
    )


def best_match(records: Iterable[CatalogRecord], query: str) -> CatalogRecord | None:
    """Return the record with the strictly highest positive score.

    Each record's ``score`` is set as a side effect.  Ties keep the first
    record seen; records scoring zero are never selected.
    """
    normalized_query = normalize_query(query)
    winner: CatalogRecord | None = None
    winner_score = 0
    for record in records:
        record.score = score_record(record, normalized_query)
        if record.score > winner_score:
            winner = record
            winner_score = record.score
    return winner
