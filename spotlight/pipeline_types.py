"""Typed containers shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .utils.paths import path_basename


@dataclass(frozen=True)
class Candidate:
    """A discovered filesystem path paired with the label we match on."""

    path: str
    basename: str

    @classmethod
    def from_path(cls, raw_path: str) -> "Candidate":
        return cls(path=raw_path, basename=path_basename(raw_path))


@dataclass(frozen=True)
class ScoredCandidate:
    """A matched candidate, its relevance and its discovery order."""

    candidate: Candidate
    score: int
    order: int

    @property
    def path(self) -> str:
        return self.candidate.path

    @property
    def basename(self) -> str:
        return self.candidate.basename


@dataclass(frozen=True)
class Segment:
    text: str
    highlight: bool


@dataclass(frozen=True)
class RankerSnapshot:
    """Immutable view of a session's top-K at one point in time."""

    query: str
    items: Tuple[ScoredCandidate, ...] = field(default_factory=tuple)
    total_seen: int = 0
    total_matched: int = 0
    sequence: int = 0
    final: bool = False

    def __len__(self) -> int:
        return len(self.items)

    @property
    def paths(self) -> list[str]:
        return [item.path for item in self.items]
