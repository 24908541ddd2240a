# helpdesk/rate_limit.py
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    start: float


class RateLimiter:
    """
    Fixed-window attempt counter keyed by client origin.

    A window resets once more than ``window_seconds`` have passed since it
    started, so a client can squeeze up to twice the limit into a short burst
    that straddles a reset. At most ``max_entries`` origins are tracked: stale
    windows are swept first, then the least recently seen origin is dropped.
    """

    def __init__(
        self,
        window_seconds: float = 15 * 60,
        max_requests: int = 20,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.max_entries = max_entries
        self.clock = clock
        self._windows: "OrderedDict[str, _Window]" = OrderedDict()

    def __len__(self):
        return len(self._windows)

    def hit(self, key: str, now: Optional[float] = None) -> bool:
        """Record one attempt for ``key``; False means the caller is over the limit."""
        now = self.clock() if now is None else now

        window = self._windows.get(key)
        if window is None:
            self._make_room(now)
            window = _Window(count=1, start=now)
            self._windows[key] = window
        elif now - window.start > self.window_seconds:
            window.count = 1
            window.start = now
        else:
            window.count += 1
        self._windows.move_to_end(key)

        return window.count <= self.max_requests

    def reset(self):
        self._windows.clear()

    def _make_room(self, now: float):
        if len(self._windows) < self.max_entries:
            return

        stale = [k for k, w in self._windows.items() if now - w.start > self.window_seconds]
        for k in stale:
            del self._windows[k]

        while self._windows and len(self._windows) >= self.max_entries:
            evicted, _ = self._windows.popitem(last=False)
            logger.debug("Rate limiter full, evicted %s", evicted)
