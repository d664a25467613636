from __future__ import annotations

import asyncio
from typing import Callable, Optional

DEFAULT_DELAY_S = 0.3


class Debouncer:
    """Runs the last scheduled callback once input has been quiet for ``delay_s``.

    Each ``schedule`` call cancels any callback that has not fired yet, so a
    burst of calls produces exactly one run. Without an explicit ``loop``
    it must be called from a running asyncio loop.
    """

    def __init__(self, delay_s: float = DEFAULT_DELAY_S, *, loop: Optional[asyncio.AbstractEventLoop] = None):
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self.delay_s = delay_s
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_s, self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()
