from __future__ import annotations

"""
Search sessions and the controller that keeps exactly one of them live.

A SearchSession pumps one path source into one IncrementalRanker.  The
SearchController owns the live session: ``start(query)`` cancels the
previous session synchronously (its producer is told to stop and its
pending read is abandoned) before the new one is scheduled, and snapshots
are only delivered while their session is still the live one.

QueryDispatcher is the keystroke-level caller: calculator first (cheap,
synchronous), then a debounced ``controller.start``.
"""

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import AsyncIterator, Callable, Optional

from loguru import logger

from .calculator import calculator_result
from .config import SearchSettings
from .debounce import Debouncer
from .path_source import PathSource, build_path_source
from .pipeline_types import RankerSnapshot, ScoredCandidate
from .ranker import IncrementalRanker
from .utils.text_clean import clean_query_text

SourceFactory = Callable[[str, SearchSettings], PathSource]
SnapshotSink = Callable[[RankerSnapshot], None]


# -----------------------
# Session
# -----------------------

class SearchSession:
    def __init__(self, query: str, source: PathSource, ranker: IncrementalRanker) -> None:
        self.query = query
        self.source = source
        self.ranker = ranker
        self.cancelled = False
        self.task: Optional[asyncio.Task] = None
        self.last_snapshot: Optional[RankerSnapshot] = None

    @property
    def closed(self) -> bool:
        return self.ranker.closed

    async def snapshots(self) -> AsyncIterator[RankerSnapshot]:
        """
        Feed the source into the ranker, yielding every emitted snapshot and
        finally the closing one.  A failing producer ends the stream early;
        whatever matched so far becomes the final result.
        """
        stream = self.source.__aiter__()
        try:
            while not self.cancelled:
                try:
                    raw = await stream.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as e:
                    logger.warning("Path producer failed for {!r}: {}", self.query, e)
                    break
                if self.cancelled:
                    break
                snap = self.ranker.feed(raw)
                if snap is not None:
                    self.last_snapshot = snap
                    yield snap
                if self.ranker.closed:
                    # hard cap hit; the final snapshot was just yielded
                    break
        finally:
            self._close_source()
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if self.cancelled:
            return
        final = self.ranker.finish()
        if final is not None:
            self.last_snapshot = final
            yield final
        logger.info(
            "Search for {!r} done: seen={} matched={} shown={}",
            self.query,
            self.ranker.total_seen,
            self.ranker.total_matched,
            len(self.last_snapshot) if self.last_snapshot else 0,
        )

    async def run(self, deliver: SnapshotSink) -> Optional[RankerSnapshot]:
        async for snap in self.snapshots():
            if self.cancelled:
                break
            deliver(snap)
        return None if self.cancelled else self.last_snapshot

    def cancel(self) -> None:
        """Stop consuming: close the ranker and producer, abandon pending reads."""
        if self.cancelled:
            return
        self.cancelled = True
        self.ranker.cancel()
        self._close_source()
        if self.task is not None and not self.task.done():
            self.task.cancel()
        logger.debug("Search for {!r} superseded", self.query)

    def _close_source(self) -> None:
        try:
            self.source.close()
        except Exception as e:
            logger.debug("Ignoring failure while stopping producer for {!r}: {}", self.query, e)


# -----------------------
# Controller
# -----------------------

class SearchController:
    """Keeps at most one live SearchSession and routes its snapshots."""

    def __init__(
        self,
        on_snapshot: SnapshotSink,
        source_factory: Optional[SourceFactory] = None,
        settings: Optional[SearchSettings] = None,
    ) -> None:
        self.on_snapshot = on_snapshot
        self.source_factory = source_factory or build_path_source
        self.settings = settings or SearchSettings()
        self._live: Optional[SearchSession] = None

    @property
    def live(self) -> Optional[SearchSession]:
        return self._live

    def new_session(self, query: str) -> SearchSession:
        ranker = IncrementalRanker(
            query,
            max_results=self.settings.max_results,
            display_every=self.settings.display_every,
            hard_cap=self.settings.hard_cap,
        )
        source = self.source_factory(query, self.settings)
        return SearchSession(query, source, ranker)

    def start(self, query: str) -> Optional[SearchSession]:
        """Supersede the live session and start ranking ``query``."""
        self.stop()
        query = clean_query_text(query)
        if not query:
            return None

        session = self.new_session(query)
        self._live = session
        loop = asyncio.get_running_loop()
        session.task = loop.create_task(session.run(partial(self._deliver, session)))
        session.task.add_done_callback(self._on_task_done)
        logger.info("Search started for {!r}", query)
        return session

    def stop(self) -> None:
        if self._live is not None:
            self._live.cancel()
            self._live = None

    async def wait(self) -> Optional[RankerSnapshot]:
        """Wait for the live session to finish (tests, CLI)."""
        session = self._live
        if session is None or session.task is None:
            return None
        try:
            return await session.task
        except asyncio.CancelledError:
            if session.cancelled:
                return None
            raise

    def _deliver(self, session: SearchSession, snapshot: RankerSnapshot) -> None:
        if session is not self._live or session.cancelled:
            return
        self.on_snapshot(snapshot)

    @staticmethod
    def _on_task_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Search task crashed: {}", exc)


# -----------------------
# Selection
# -----------------------

def clamp_selection(index: int, count: int) -> int:
    """-1 when there is nothing to select, else ``index`` clamped to [0, count-1]."""
    if count <= 0:
        return -1
    return max(0, min(count - 1, index))


@dataclass
class Selection:
    """Keyboard cursor over the latest snapshot; back to the top row on every update."""

    index: int = -1
    count: int = 0

    def update(self, snapshot: RankerSnapshot) -> int:
        self.count = len(snapshot)
        self.index = clamp_selection(0, self.count)
        return self.index

    def move(self, delta: int) -> int:
        if self.count:
            self.index = clamp_selection(self.index + delta, self.count)
        return self.index

    def reset(self) -> None:
        self.index, self.count = -1, 0

    def current(self, snapshot: RankerSnapshot) -> Optional[ScoredCandidate]:
        if 0 <= self.index < len(snapshot):
            return snapshot.items[self.index]
        return None


# -----------------------
# Keystroke dispatch
# -----------------------

class QueryDispatcher:
    """
    What the overlay does on each text change: show the calculator result
    straight away, clear everything on empty input, and (re)arm the
    debounced search.
    """

    def __init__(
        self,
        on_calc: Callable[[Optional[str]], None],
        on_snapshot: SnapshotSink,
        on_clear: Optional[Callable[[], None]] = None,
        source_factory: Optional[SourceFactory] = None,
        settings: Optional[SearchSettings] = None,
    ) -> None:
        self.settings = settings or SearchSettings()
        self.on_calc = on_calc
        self.on_clear = on_clear
        self.selection = Selection()
        self._on_snapshot = on_snapshot
        self.controller = SearchController(self._handle_snapshot, source_factory, self.settings)
        self.debouncer = Debouncer(self.controller.start, self.settings.search_delay_ms)

    def text_changed(self, text: str) -> Optional[str]:
        query = clean_query_text(text)
        self.debouncer.cancel()
        if not query:
            self.controller.stop()
            self.selection.reset()
            self.on_calc(None)
            if self.on_clear is not None:
                self.on_clear()
            return None

        calc = calculator_result(query)
        self.on_calc(calc)
        self.debouncer.trigger(query)
        return calc

    def close(self) -> None:
        self.debouncer.cancel()
        self.controller.stop()
        self.selection.reset()

    def _handle_snapshot(self, snapshot: RankerSnapshot) -> None:
        self.selection.update(snapshot)
        self._on_snapshot(snapshot)
