"""Per-key request quota for thread creation."""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Allow ``limit`` hits per key within a window that restarts on expiry.

    A key's window opens with its first hit and resets on the first hit
    after ``window`` seconds have elapsed. Expired windows are swept at most
    once per window, so the table only holds keys seen within the last two
    windows. Check-and-increment is atomic per limiter instance.
    """

    def __init__(
        self,
        limit: int = 10,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window = window
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep = 0.0
        self._lock = asyncio.Lock()

    async def hit(self, key: str) -> bool:
        """Record a request for ``key``; False if the quota is exhausted."""
        async with self._lock:
            now = self._clock()
            self._sweep(now)
            current = self._windows.get(key)
            if current is None or now > current.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window)
                return True
            if current.count >= self.limit:
                return False
            current.count += 1
            return True

    def _sweep(self, now: float) -> None:
        # Runs at most once per window
        if now < self._next_sweep:
            return
        self._windows = {
            key: w for key, w in self._windows.items() if now <= w.reset_at
        }
        self._next_sweep = now + self.window

    @property
    def tracked_keys(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        self._windows.clear()
        self._next_sweep = 0.0
