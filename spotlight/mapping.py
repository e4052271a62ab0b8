from __future__ import annotations
"""
Mapping utilities to convert ranker output into API / renderer responses.

Centralises how a ScoredCandidate becomes a RankedItem (highlight
segments, home-relative directory label, icon) and how a RankerSnapshot
becomes a SearchResponse.
"""

import os
from typing import Dict, List, Optional

from loguru import logger

from .config import RankedItem, SearchResponse, SegmentModel
from .fuzzy import highlight_matches
from .pipeline_types import RankerSnapshot, ScoredCandidate
from .utils.paths import display_dir

FOLDER_ICON = "folder-symbolic"
DEFAULT_ICON = "text-x-generic-symbolic"

_ICONS_BY_EXTENSION: Dict[str, str] = {
    "pdf": "application-pdf-symbolic",
    "doc": "x-office-document-symbolic",
    "docx": "x-office-document-symbolic",
    "xls": "x-office-spreadsheet-symbolic",
    "xlsx": "x-office-spreadsheet-symbolic",
    "ppt": "x-office-presentation-symbolic",
    "pptx": "x-office-presentation-symbolic",
    "png": "image-x-generic-symbolic",
    "jpg": "image-x-generic-symbolic",
    "jpeg": "image-x-generic-symbolic",
    "gif": "image-x-generic-symbolic",
    "svg": "image-x-generic-symbolic",
    "mp4": "video-x-generic-symbolic",
    "mkv": "video-x-generic-symbolic",
    "avi": "video-x-generic-symbolic",
    "mp3": "audio-x-generic-symbolic",
    "flac": "audio-x-generic-symbolic",
    "ogg": "audio-x-generic-symbolic",
    "txt": DEFAULT_ICON,
    "md": DEFAULT_ICON,
    "js": "text-x-script-symbolic",
    "ts": "text-x-script-symbolic",
    "py": "text-x-script-symbolic",
    "sh": "text-x-script-symbolic",
    "zip": "package-x-generic-symbolic",
    "tar": "package-x-generic-symbolic",
    "gz": "package-x-generic-symbolic",
}


def guess_icon(basename: str, is_dir: bool = False) -> str:
    """Symbolic icon name: folder for directories, else by extension."""
    if is_dir:
        return FOLDER_ICON
    if "." not in basename:
        return DEFAULT_ICON
    ext = basename.rsplit(".", 1)[-1].lower()
    return _ICONS_BY_EXTENSION.get(ext, DEFAULT_ICON)


def to_ranked_item(scored: ScoredCandidate, query: str) -> RankedItem:
    is_dir = os.path.isdir(scored.path)
    segments = [
        SegmentModel(text=seg.text, highlight=seg.highlight)
        for seg in highlight_matches(query, scored.basename)
    ]
    return RankedItem(
        path=scored.path,
        basename=scored.basename,
        score=scored.score,
        segments=segments,
        display_dir=display_dir(scored.path),
        is_dir=is_dir,
        icon_name=guess_icon(scored.basename, is_dir),
    )


def snapshot_to_response(
    snapshot: Optional[RankerSnapshot],
    query: str = "",
    calc_result: Optional[str] = None,
) -> SearchResponse:
    """
    Convert a snapshot into a SearchResponse.  A missing snapshot (nothing
    ran, or the session was superseded) maps to an empty final response.
    """
    if snapshot is None:
        return SearchResponse(query=query, calc_result=calc_result, ranked=[], final=True)

    ranked: List[RankedItem] = [to_ranked_item(c, snapshot.query) for c in snapshot.items]
    logger.debug(
        "Mapped snapshot #{} for {!r}: {} items (final={})",
        snapshot.sequence, snapshot.query, len(ranked), snapshot.final,
    )
    return SearchResponse(
        query=snapshot.query,
        calc_result=calc_result,
        ranked=ranked,
        total_seen=snapshot.total_seen,
        total_matched=snapshot.total_matched,
        final=snapshot.final,
    )
