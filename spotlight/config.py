from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


# ---------------------------
# Paths
# ---------------------------

HOME_DIR = Path.home()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _default_search_dirs() -> List[Path]:
    raw = os.getenv("SPOTLIGHT_SEARCH_DIRS")
    if raw:
        return [Path(p).expanduser() for p in raw.split(os.pathsep) if p.strip()]
    return [
        HOME_DIR,
        HOME_DIR / "Documents",
        HOME_DIR / "Downloads",
        HOME_DIR / "Desktop",
    ]


# Directories handed to the path producer (missing ones are skipped at search time)
SEARCH_DIRS: List[Path] = _default_search_dirs()


# ---------------------------
# Result size policy
# ---------------------------

DEFAULT_MAX_RESULTS = 10
MAX_RESULTS = _env_int("SPOTLIGHT_MAX_RESULTS", DEFAULT_MAX_RESULTS)

# Re-rank and emit after this many newly matched candidates
DEFAULT_DISPLAY_EVERY = 5
DISPLAY_EVERY = _env_int("SPOTLIGHT_DISPLAY_EVERY", DEFAULT_DISPLAY_EVERY)

# Producer is stopped once matched candidates reach MAX_RESULTS * this
DEFAULT_HARD_CAP_MULTIPLIER = 3
HARD_CAP_MULTIPLIER = _env_int("SPOTLIGHT_HARD_CAP_MULTIPLIER", DEFAULT_HARD_CAP_MULTIPLIER)


# ---------------------------
# Enumeration & responsiveness
# ---------------------------

DEFAULT_SEARCH_DELAY_MS = 50
SEARCH_DELAY_MS = _env_int("SPOTLIGHT_SEARCH_DELAY_MS", DEFAULT_SEARCH_DELAY_MS)

DEFAULT_FIND_MAX_DEPTH = 5
FIND_MAX_DEPTH = _env_int("SPOTLIGHT_FIND_MAX_DEPTH", DEFAULT_FIND_MAX_DEPTH)

# Walker hands control back to the loop after this many directory entries
WALK_YIELD_EVERY = 256


# ---------------------------
# Text processing
# ---------------------------

MAX_QUERY_CHARS = 1024  # input size cap

# Characters that make a query "look like" arithmetic
EXPRESSION_OPERATORS = "+-*/^%()"

# Decimal places kept by the calculator to absorb float noise
CALC_DECIMALS = 10


# ---------------------------
# Launch
# ---------------------------

LAUNCH_TIMEOUT_SECONDS = 10.0
FALLBACK_OPENER = "xdg-open"


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class SearchSettings(BaseModel):
    """
    Validated view of the knobs a ranking session needs.
    Built from the module constants unless overridden by the caller.
    """

    max_results: int = Field(default=MAX_RESULTS, ge=1)
    display_every: int = Field(default=DISPLAY_EVERY, ge=1)
    hard_cap_multiplier: int = Field(default=HARD_CAP_MULTIPLIER, ge=1)
    search_delay_ms: int = Field(default=SEARCH_DELAY_MS, ge=0)
    max_depth: int = Field(default=FIND_MAX_DEPTH, ge=1)
    search_dirs: List[Path] = Field(default_factory=lambda: list(SEARCH_DIRS))

    @property
    def hard_cap(self) -> int:
        return self.max_results * self.hard_cap_multiplier

    def valid_search_dirs(self) -> List[Path]:
        """Existing directories only, duplicates dropped, order kept."""
        seen = set()
        out: List[Path] = []
        for d in self.search_dirs:
            key = str(d)
            if key in seen or not d.is_dir():
                continue
            seen.add(key)
            out.append(d)
        return out


class SegmentModel(BaseModel):
    text: str
    highlight: bool


class RankedItem(BaseModel):
    """
    One rendered search hit. ``segments`` re-join to ``basename`` exactly.
    """

    path: str
    basename: str
    score: int
    segments: List[SegmentModel]
    display_dir: str
    is_dir: bool = False
    icon_name: str = "text-x-generic-symbolic"


class SearchResponse(BaseModel):
    """
    Response body for POST /search and each line of POST /search/stream.
    """

    query: str
    calc_result: Optional[str] = None
    ranked: List[RankedItem] = Field(default_factory=list)
    total_seen: int = Field(default=0, ge=0)
    total_matched: int = Field(default=0, ge=0)
    final: bool = True


class CalcResponse(BaseModel):
    query: str
    result: Optional[str] = None


class LaunchResponse(BaseModel):
    path: str
    uri: str
    launched: bool


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
