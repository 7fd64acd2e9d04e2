"""
Bounded exponential-backoff retry for a single logical request.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from boorucore.errors import BooruError, RateLimited, is_transient
from boorucore.observability import increment

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Retries transient ``BooruError`` failures with exponential backoff.

    ``max_attempts`` counts the first call, so ``max_attempts=1`` never
    retries. The delay before retry *n* (the first retry is n=1) is
    ``base_delay * 2 ** (n - 1)``, capped at ``max_delay`` and, with
    ``jitter``, scaled by a random factor in [0.8, 1.2]. A ``RateLimited``
    error carrying ``retry_after`` waits at least that long.

    Permanent errors and anything that is not a ``BooruError`` propagate on the
    first occurrence. When attempts run out the last error is re-raised as is.
    """

    def __init__(
        self,
        max_attempts: int = 4,
        base_delay: float = 0.1,
        max_delay: Optional[float] = 5.0,
        jitter: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {base_delay}")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self._sleep = sleep

    @classmethod
    def none(cls) -> RetryPolicy:
        return cls(max_attempts=1)

    def delay_for(self, retry: int) -> float:
        """Backoff before the ``retry``-th retry (1-based)."""
        delay = self.base_delay * (2 ** (retry - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.8, 1.2)
        return delay

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except BooruError as e:
                if not is_transient(e) or attempt >= self.max_attempts:
                    raise

                delay = self.delay_for(attempt)
                if isinstance(e, RateLimited) and e.retry_after is not None:
                    delay = max(delay, e.retry_after)

                increment("retries_total", labels={"error": type(e).__name__})
                logger.info(
                    "Retrying after transient error",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    delay=round(delay, 3),
                    error=str(e),
                )
                await self._sleep(delay)
