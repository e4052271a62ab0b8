from __future__ import annotations

"""
Incremental top-K ranking for one query.

A ranker is built fresh for every search and thrown away when a newer
query supersedes it.  Raw paths arrive one at a time from the path
producer; each is scored on its basename and, when it matches, buffered
with its discovery order.  Snapshots (sorted by score, ties by
first-discovered, truncated to K) are emitted:

* after every ``display_every`` new matches, and
* on every match once ``max_results`` candidates have matched, and
* once more, marked final, at end-of-stream or when ``hard_cap`` matches
  have been collected (the producer should then be stopped).
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

from loguru import logger

from .config import DISPLAY_EVERY, HARD_CAP_MULTIPLIER, MAX_RESULTS
from .fuzzy import fuzzy_score
from .pipeline_types import Candidate, RankerSnapshot, ScoredCandidate
from .utils.paths import is_utf8_clean

SnapshotCallback = Callable[[RankerSnapshot], None]


@dataclass
class RankerState:
    query: str
    top_k: List[ScoredCandidate] = field(default_factory=list)
    total_seen: int = 0
    total_matched: int = 0
    closed: bool = False


def rank_candidates(matched: List[ScoredCandidate], k: int) -> List[ScoredCandidate]:
    """Descending score, first-discovered first on ties, at most ``k``."""
    ordered = sorted(matched, key=lambda c: (-c.score, c.order))
    return ordered[:k]


class IncrementalRanker:
    """
    Per-query ranking state fed one raw path at a time.

    ``feed`` returns the snapshot it emitted (or None) and also passes it
    to ``on_snapshot`` when one is given.
    """

    def __init__(
        self,
        query: str,
        max_results: int = MAX_RESULTS,
        display_every: int = DISPLAY_EVERY,
        hard_cap: Optional[int] = None,
        on_snapshot: Optional[SnapshotCallback] = None,
    ) -> None:
        if max_results < 1:
            raise ValueError("max_results must be >= 1")
        if display_every < 1:
            raise ValueError("display_every must be >= 1")
        self.query = query
        self.max_results = max_results
        self.display_every = display_every
        self.hard_cap = hard_cap if hard_cap is not None else max_results * HARD_CAP_MULTIPLIER
        if self.hard_cap < 1:
            raise ValueError("hard_cap must be >= 1")
        self.on_snapshot = on_snapshot

        self.state = RankerState(query=query)
        self._matched: List[ScoredCandidate] = []
        self._seen_paths: Set[str] = set()
        self._last_emit_count = 0
        self._sequence = 0
        self.cancelled = False

    # -----------------------
    # Read-only views
    # -----------------------

    @property
    def closed(self) -> bool:
        return self.state.closed

    @property
    def total_seen(self) -> int:
        return self.state.total_seen

    @property
    def total_matched(self) -> int:
        return self.state.total_matched

    @property
    def top_k(self) -> List[ScoredCandidate]:
        return list(self.state.top_k)

    @property
    def hard_cap_reached(self) -> bool:
        return self.state.total_matched >= self.hard_cap

    # -----------------------
    # Feed / finish / cancel
    # -----------------------

    def feed(self, raw_path: str) -> Optional[RankerSnapshot]:
        if self.state.closed:
            return None
        raw_path = raw_path.rstrip("\r\n")
        if not raw_path:
            return None

        self.state.total_seen += 1
        if not is_utf8_clean(raw_path):
            logger.debug("Ignoring path that is not valid UTF-8: {!r}", raw_path)
            return None
        if raw_path in self._seen_paths:
            return None
        self._seen_paths.add(raw_path)

        candidate = Candidate.from_path(raw_path)
        score = fuzzy_score(self.query, candidate.basename)
        if score is None:
            return None

        self._matched.append(ScoredCandidate(candidate=candidate, score=score, order=len(self._matched)))
        self.state.total_matched = len(self._matched)

        if self.hard_cap_reached:
            logger.debug("Hard cap {} reached for {!r}", self.hard_cap, self.query)
            return self.finish()

        due = self.state.total_matched - self._last_emit_count >= self.display_every
        if due or self.state.total_matched >= self.max_results:
            return self._emit(final=False)
        return None

    def finish(self) -> Optional[RankerSnapshot]:
        """End-of-stream: emit the final snapshot and close. No-op once closed."""
        if self.state.closed:
            return None
        snapshot = self._emit(final=True)
        self.state.closed = True
        return snapshot

    def cancel(self) -> None:
        """Superseded: close without emitting anything further."""
        self.cancelled = True
        self.state.closed = True

    def snapshot(self, final: bool = False) -> RankerSnapshot:
        """Current ranked view without emitting it."""
        return RankerSnapshot(
            query=self.query,
            items=tuple(rank_candidates(self._matched, self.max_results)),
            total_seen=self.state.total_seen,
            total_matched=self.state.total_matched,
            sequence=self._sequence,
            final=final,
        )

    def _emit(self, final: bool) -> RankerSnapshot:
        self.state.top_k = rank_candidates(self._matched, self.max_results)
        self._last_emit_count = self.state.total_matched
        self._sequence += 1
        snap = RankerSnapshot(
            query=self.query,
            items=tuple(self.state.top_k),
            total_seen=self.state.total_seen,
            total_matched=self.state.total_matched,
            sequence=self._sequence,
            final=final,
        )
        if self.on_snapshot is not None:
            self.on_snapshot(snap)
        return snap
