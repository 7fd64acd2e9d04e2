"""
Sliding-window rate limiter.

Keeps the monotonic timestamps of the last ``permits`` acquisitions. A new
acquisition is admitted once the oldest of them has left the rolling window,
which gives a strict bound: no window of length ``window`` ever contains more
than ``permits`` admissions, and there is no burst on top of that.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Deque, Optional

import structlog

from boorucore.observability import histogram

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Cooperative limiter shared by every request to one site.

    Waiters queue on an ``asyncio.Lock`` and the head of the queue sleeps
    while holding it, so concurrent callers are admitted one at a time in
    arrival order. A permit is recorded only after the wait completes; a
    caller cancelled mid-wait releases the lock without consuming anything.
    """

    def __init__(self, permits: int = 2, window: float = 1.0, name: Optional[str] = None) -> None:
        if permits < 1:
            raise ValueError(f"permits must be >= 1, got {permits}")
        if window <= 0:
            raise ValueError(f"window must be > 0, got {window}")
        self.permits = permits
        self.window = window
        self.name = name or "default"
        self._history: Deque[float] = deque()
        self._lock = asyncio.Lock()

    @classmethod
    def per_second(cls, rate: int, name: Optional[str] = None) -> RateLimiter:
        return cls(permits=rate, window=1.0, name=name)

    @classmethod
    def per_minute(cls, rate: int, name: Optional[str] = None) -> RateLimiter:
        return cls(permits=rate, window=60.0, name=name)

    def _prune(self, now: float) -> None:
        while self._history and now - self._history[0] >= self.window:
            self._history.popleft()

    def _delay(self, now: float) -> float:
        self._prune(now)
        if len(self._history) < self.permits:
            return 0.0
        return self._history[0] + self.window - now

    async def acquire(self) -> float:
        """Wait for a permit and consume it.

        Returns:
            Seconds spent waiting.
        """
        start = time.monotonic()
        async with self._lock:
            delay = self._delay(start)
            while delay > 0:
                logger.debug("Rate limit reached, waiting", limiter=self.name, delay=round(delay, 3))
                await asyncio.sleep(delay)
                delay = self._delay(time.monotonic())
            now = time.monotonic()
            self._history.append(now)

        waited = now - start
        histogram("rate_limit_wait_seconds", waited)
        return waited

    def try_acquire(self) -> bool:
        """Consume a permit only if one is free right now and nobody is queued."""
        if self._lock.locked():
            return False
        now = time.monotonic()
        if self._delay(now) > 0:
            return False
        self._history.append(now)
        return True

    @property
    def available(self) -> int:
        """Permits that could be taken immediately."""
        self._prune(time.monotonic())
        return self.permits - len(self._history)

    def reset(self) -> None:
        self._history.clear()
