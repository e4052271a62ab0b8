# spotlight/utils/text_clean.py
from __future__ import annotations

from ..config import MAX_QUERY_CHARS


def clean_query_text(q: str | None, max_len: int = MAX_QUERY_CHARS) -> str:
    """
    Minimal, safe query normaliser applied to every keystroke:
    - trim surrounding whitespace (inner spaces are part of file names)
    - hard cap (defensive)
    """
    q = "" if q is None else str(q)
    q = q.strip()
    if len(q) > max_len:
        q = q[:max_len]
    return q
