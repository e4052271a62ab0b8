from __future__ import annotations

from typing import Any, Callable, Optional
import asyncio

from .config import SEARCH_DELAY_MS


class Debouncer:
    """
    Delay ``action`` until input has been quiet for ``delay_ms``.

    Each ``trigger`` cancels the pending call and schedules a new one on
    the running loop (last writer wins).  Must be used from inside the
    event loop that should run the action.
    """

    def __init__(self, action: Callable[..., Any], delay_ms: int = SEARCH_DELAY_MS) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.action = action
        self.delay_ms = delay_ms
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_ms / 1000.0, self._fire, args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, args: tuple) -> None:
        self._handle = None
        self.action(*args)
