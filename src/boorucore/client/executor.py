"""
The single path every fetch takes to a site adapter.

    cache lookup -> rate limiter permit -> retry(adapter call) -> cache insert

A cache hit returns before the limiter is touched, so cached pages cost no
permits. Failures are never cached.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import structlog

from boorucore.client.cache import ResponseCache
from boorucore.client.rate_limiter import RateLimiter
from boorucore.client.retry import RetryPolicy
from boorucore.errors import BooruError, InvalidRequest
from boorucore.models import TagSuggestion
from boorucore.observability import histogram, increment
from boorucore.protocols import Autocomplete, Post, SiteAdapter
from boorucore.query import Query, cache_key

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RequestExecutor:
    """
    Composes rate limiting, caching and retries around adapter calls.

    The limiter, cache and policy are injected; one executor is typically
    shared by every query against one site, and the limiter and cache may be
    shared further. ``cache=None`` disables caching.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cache: Optional[ResponseCache] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.retry_policy = retry_policy or RetryPolicy()

    async def execute(self, query: Query, adapter: SiteAdapter) -> List[Post]:
        """Fetch one page of posts for ``query``."""
        return await self._run(
            key=cache_key(query),
            shape=List[adapter.post_model],  # type: ignore[name-defined]
            call=lambda: adapter.fetch(query),
            site=adapter.site_name(),
        )

    async def execute_by_id(self, post_id: int, query: Query, adapter: SiteAdapter) -> Post:
        """Fetch a single post. Credentials from ``query`` are used; its tags are not."""
        user = query.credentials.user_id if query.credentials else None
        return await self._run(
            key=f"{adapter.site_name()}:post:{post_id}:{user}",
            shape=adapter.post_model,
            call=lambda: adapter.fetch_by_id(post_id, query),
            site=adapter.site_name(),
        )

    async def execute_suggest(self, prefix: str, limit: int, adapter: SiteAdapter) -> List[TagSuggestion]:
        """Fetch autocomplete suggestions through the same limiter, cache and retry path."""
        if not isinstance(adapter, Autocomplete):
            raise InvalidRequest(f"{adapter.site_name()} does not support autocomplete")
        return await self._run(
            key=f"{adapter.site_name()}:suggest:{prefix.strip().lower()}:{limit}",
            shape=List[TagSuggestion],
            call=lambda: adapter.suggest(prefix, limit),
            site=adapter.site_name(),
        )

    async def _run(self, key: str, shape: Any, call: Callable[[], Awaitable[T]], site: str) -> T:
        if self.cache is not None:
            cached = self.cache.get(key, shape)
            if cached is not None:
                increment("cache_hits_total", labels={"site": site})
                logger.debug("Cache hit", site=site, key=key)
                return cached
            increment("cache_misses_total", labels={"site": site})

        await self.rate_limiter.acquire()

        start = time.monotonic()
        try:
            result = await self.retry_policy.run(call)
        except BooruError as e:
            increment("requests_total", labels={"site": site, "outcome": type(e).__name__})
            logger.warning("Request failed", site=site, error_type=type(e).__name__, error=str(e))
            raise
        finally:
            histogram("request_latency_seconds", time.monotonic() - start, labels={"site": site})

        increment("requests_total", labels={"site": site, "outcome": "ok"})
        if self.cache is not None:
            self.cache.insert(key, result)
        return result
