from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window request counter per identifier, held in process memory."""

    def __init__(self, max_requests: int = 25, window_seconds: float = 3600, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}

    def check(self, identifier: str) -> bool:
        """Count one request; False once the identifier is over its limit for this window."""
        now = self._clock()
        self._evict_expired(now)
        window = self._windows.get(identifier)
        if window is None or now > window.reset_at:
            self._windows[identifier] = _Window(count=1, reset_at=now + self.window_seconds)
            return True
        if window.count >= self.max_requests:
            return False
        window.count += 1
        return True

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]

    @property
    def tracked(self) -> int:
        return len(self._windows)

    def retry_after(self, identifier: str) -> int:
        window = self._windows.get(identifier)
        if window is None:
            return 0
        return max(0, int(window.reset_at - self._clock()))

    def reset(self) -> None:
        self._windows.clear()
