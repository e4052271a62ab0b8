"""Fuzzy matching for launcher results.

Scoring tiers, first match wins:
- Exact match: 1000
- Prefix match: 900
- Contains match: 800
- Fuzzy (subsequence) match: 10 + run*5 per matched character, where
  ``run`` counts consecutive matches. Not normalised by label length.

Comparisons are case-insensitive, done per character so that indices into
the lowercased text always line up with the original label.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .pipeline_types import Segment

EXACT_SCORE = 1000
PREFIX_SCORE = 900
CONTAINS_SCORE = 800
FUZZY_BASE = 10
FUZZY_RUN_BONUS = 5


def _fold(text: str) -> List[str]:
    return [ch.lower() for ch in text]


def _find(haystack: Sequence[str], needle: Sequence[str]) -> int:
    """Index of the first contiguous occurrence of ``needle``, or -1."""
    n = len(needle)
    if n == 0:
        return 0
    first = needle[0]
    for i in range(len(haystack) - n + 1):
        if haystack[i] == first and list(haystack[i:i + n]) == list(needle):
            return i
    return -1


def _subsequence_score(query: Sequence[str], label: Sequence[str]) -> Optional[int]:
    qi = 0
    run = 0
    score = 0
    for ch in label:
        if qi >= len(query):
            break
        if ch == query[qi]:
            qi += 1
            run += 1
            score += FUZZY_BASE + run * FUZZY_RUN_BONUS
        else:
            run = 0
    if qi < len(query):
        return None
    return score


def fuzzy_score(query: str, label: str) -> Optional[int]:
    """Score ``label`` against ``query``; None means no match.

    Returns:
        Higher = better. None when the query letters do not all appear,
        in order, in the label.
    """
    if not query:
        return EXACT_SCORE

    q = _fold(query)
    t = _fold(label)

    if t == q:
        return EXACT_SCORE
    if t[:len(q)] == q:
        return PREFIX_SCORE
    if _find(t, q) >= 0:
        return CONTAINS_SCORE
    return _subsequence_score(q, t)


def highlight_matches(query: str, label: str) -> List[Segment]:
    """Split ``label`` into highlighted / plain segments for display.

    A contiguous occurrence of the query wins (prefix, match, suffix);
    otherwise the characters picked by the subsequence scan are
    highlighted run by run. Joining the segment texts gives ``label``
    back unchanged.
    """
    q = _fold(query)
    t = _fold(label)
    segments: List[Segment] = []

    idx = _find(t, q)
    if idx >= 0:
        end = idx + len(q)
        if idx > 0:
            segments.append(Segment(label[:idx], False))
        if end > idx:
            segments.append(Segment(label[idx:end], True))
        if end < len(label):
            segments.append(Segment(label[end:], False))
        return segments

    qi = 0
    seg_start = 0
    in_match = False
    for ti, ch in enumerate(t):
        matches = qi < len(q) and ch == q[qi]
        if matches != in_match:
            if ti > seg_start:
                segments.append(Segment(label[seg_start:ti], in_match))
            seg_start = ti
            in_match = matches
        if matches:
            qi += 1
    if seg_start < len(label):
        segments.append(Segment(label[seg_start:], in_match))
    return segments


def join_segments(segments: Sequence[Segment]) -> str:
    return "".join(seg.text for seg in segments)
