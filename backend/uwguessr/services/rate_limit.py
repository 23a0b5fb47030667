import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_time: float


class RateLimiter:
    """Fixed-window request counter per key, holding at most ``capacity`` keys.

    Kept on the application and injected into routes, so a shared backend
    (Redis, database) can replace it when running several instances.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        capacity: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.capacity = capacity
        self._clock = clock
        self._windows: "OrderedDict[str, _Window]" = OrderedDict()

    def hit(self, key: str) -> bool:
        """Count one request for ``key``; False when it is over the limit."""
        now = self._clock()
        window = self._windows.get(key)

        if window is None or now > window.reset_time:
            self._make_room(now)
            self._windows[key] = _Window(count=1, reset_time=now + self.window_seconds)
            self._windows.move_to_end(key)
            return True

        window.count += 1
        if window.count > self.max_requests:
            logger.info("Rate limit exceeded for %s (%d requests)", key, window.count)
            return False
        return True

    def _make_room(self, now: float) -> None:
        if len(self._windows) < self.capacity:
            return
        expired = [k for k, w in self._windows.items() if now > w.reset_time]
        for k in expired:
            del self._windows[k]
        while len(self._windows) >= self.capacity:
            self._windows.popitem(last=False)

    def __len__(self) -> int:
        return len(self._windows)
