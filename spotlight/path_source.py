from __future__ import annotations

"""
Path producers feeding the ranker.

Every source is an async iterable of absolute path strings whose basename
contains the query (case-insensitive), with hidden components excluded.
Iteration is one-shot; a new search builds a new source.  ``close()`` is
synchronous and best-effort: it asks the producer to stop and never
raises, so a superseding search can call it and move on.

* FindPathSource     -- ``find(1)`` run through asyncio, read line by line
* WalkPathSource     -- pure-Python ``os.scandir`` walk, same filter
* IterablePathSource -- in-memory list (tests, evaluation harness)
"""

import asyncio
import os
import shutil
from pathlib import Path
from typing import AsyncIterator, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from loguru import logger

from .config import WALK_YIELD_EVERY, SearchSettings
from .errors import ProducerFailure
from .utils.paths import escape_glob, is_hidden_path, is_utf8_clean


class PathSource(Protocol):
    def __aiter__(self) -> AsyncIterator[str]: ...

    def close(self) -> None: ...


def build_find_argv(roots: Sequence[Path | str], max_depth: int, query: str) -> List[str]:
    return [
        "find",
        *[str(r) for r in roots],
        "-maxdepth", str(max_depth),
        "-iname", f"*{escape_glob(query)}*",
        "-not", "-path", "*/.*",   # hidden dirs
        "!", "-name", ".*",        # hidden files
    ]


# ---------------------------------------------------------------------------
# find(1)
# ---------------------------------------------------------------------------


class FindPathSource:
    """Streams ``find`` output; stderr (permission noise) is discarded."""

    def __init__(self, roots: Sequence[Path | str], max_depth: int, query: str) -> None:
        self.argv = build_find_argv(roots, max_depth, query)
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[str]:
        return self._lines()

    async def _lines(self) -> AsyncIterator[str]:
        if self._closed:
            return
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self.argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise ProducerFailure(f"could not start find: {e}") from e

        stdout = self._proc.stdout
        assert stdout is not None
        try:
            while not self._closed:
                try:
                    line = await stdout.readline()
                except (ValueError, OSError) as e:
                    raise ProducerFailure(f"find output unreadable: {e}") from e
                if not line:
                    break
                raw = line.rstrip(b"\n")
                try:
                    path = raw.decode("utf-8")
                except UnicodeDecodeError:
                    logger.debug("Dropping non-UTF-8 path from find: {!r}", raw)
                    continue
                if path:
                    yield path
        finally:
            self.close()
            if self._proc.returncode is None:
                await self._proc.wait()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        proc = self._proc
        if proc is None or proc.returncode is not None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug("Could not terminate find (pid {}): {}", proc.pid, e)


# ---------------------------------------------------------------------------
# Pure-Python walk
# ---------------------------------------------------------------------------


class WalkPathSource:
    """
    Pre-order walk mirroring the ``find`` filter: each entry is yielded
    and, if it is a directory, descended into before its next sibling.
    Depth 0 is the root itself, like ``-maxdepth``.  Siblings are visited
    in name order.  Names that are not valid UTF-8 are skipped.
    """

    def __init__(
        self,
        roots: Sequence[Path | str],
        max_depth: int,
        query: str,
        yield_every: int = WALK_YIELD_EVERY,
    ) -> None:
        self.roots = [str(r) for r in roots]
        self.max_depth = max_depth
        self.query = query
        self.yield_every = max(1, yield_every)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[str]:
        return self._walk()

    def _matches(self, name: str) -> bool:
        return not name.startswith(".") and self.query.lower() in name.lower()

    @staticmethod
    def _entries(directory: str) -> List[os.DirEntry]:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.debug("Skipping unreadable directory {}: {}", directory, e)
            return []

    async def _walk(self) -> AsyncIterator[str]:
        visited = 0
        for root in self.roots:
            if self._closed:
                return
            if is_hidden_path(root) or not is_utf8_clean(root):
                continue
            root_name = os.path.basename(root.rstrip(os.sep)) or root
            if self._matches(root_name):
                yield root

            stack: List[Tuple[Iterator[os.DirEntry], int]] = [(iter(self._entries(root)), 1)]
            while stack:
                if self._closed:
                    return
                entries, depth = stack[-1]
                entry = next(entries, None)
                if entry is None:
                    stack.pop()
                    continue
                visited += 1
                if visited % self.yield_every == 0:
                    await asyncio.sleep(0)
                if entry.name.startswith("."):
                    continue
                if not is_utf8_clean(entry.path):
                    logger.debug("Dropping non-UTF-8 path {!r}", entry.path)
                    continue
                if self._matches(entry.name):
                    yield entry.path
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                if is_dir and depth < self.max_depth:
                    stack.append((iter(self._entries(entry.path)), depth + 1))

    def close(self) -> None:
        self._closed = True


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class IterablePathSource:
    """
    Replays a fixed list of paths, handing control back to the loop after
    each one so consumers see them arrive asynchronously.
    """

    def __init__(self, paths: Iterable[str]) -> None:
        self.paths = list(paths)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[str]:
        return self._replay()

    async def _replay(self) -> AsyncIterator[str]:
        for path in self.paths:
            if self._closed:
                return
            await asyncio.sleep(0)
            if self._closed:
                return
            yield path

    def close(self) -> None:
        self._closed = True


def find_available() -> bool:
    return os.name == "posix" and shutil.which("find") is not None


def build_path_source(query: str, settings: Optional[SearchSettings] = None) -> PathSource:
    """
    Pick a producer for ``query`` over the configured roots: ``find`` when
    the platform has it, the Python walker otherwise.
    """
    settings = settings or SearchSettings()
    roots = settings.valid_search_dirs()
    if not roots:
        logger.warning("No searchable directories among {}", [str(d) for d in settings.search_dirs])
        return IterablePathSource([])
    if find_available():
        return FindPathSource(roots, settings.max_depth, query)
    return WalkPathSource(roots, settings.max_depth, query)
