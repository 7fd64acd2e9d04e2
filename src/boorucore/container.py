"""
Wiring for boorucore components.

``BooruContainer`` owns the shared pieces (one HTTP session, one response
cache, one retry policy, one rate limiter per site) and hands out
``BooruClient`` instances built from them. Nothing here is global: two
containers share no state.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import structlog

from boorucore.client.booru_client import BooruClient
from boorucore.client.cache import ResponseCache
from boorucore.client.executor import RequestExecutor
from boorucore.client.http_client import HttpClient
from boorucore.client.rate_limiter import RateLimiter
from boorucore.client.retry import RetryPolicy
from boorucore.config import Config
from boorucore.download import DownloadOptions, Downloader
from boorucore.query import QueryBuilder
from boorucore.sites import adapter_class


class BooruContainer:
    """
    Builds and caches per-site clients from a ``Config``.

    Example:
        async with BooruContainer(config).lifecycle() as container:
            posts = await container.client("safebooru").builder().tag("landscape").get()
    """

    def __init__(self, config: Optional[Config] = None, http: Optional[HttpClient] = None) -> None:
        self.config = config or Config()
        self.logger = structlog.get_logger(self.__class__.__name__)
        self.http = http or HttpClient(self.config.http)
        self.retry_policy = RetryPolicy(
            max_attempts=self.config.retry.max_attempts,
            base_delay=self.config.retry.base_delay,
            max_delay=self.config.retry.max_delay,
            jitter=self.config.retry.jitter,
        )
        self.cache: Optional[ResponseCache] = None
        if self.config.cache.enabled:
            self.cache = ResponseCache(ttl=self.config.cache.ttl_seconds, max_entries=self.config.cache.max_entries)
        self._limiters: Dict[str, RateLimiter] = {}
        self._clients: Dict[str, BooruClient] = {}

    async def initialize(self) -> None:
        await self.http.initialize()
        self.logger.debug("Container initialized", cache_enabled=self.cache is not None)

    async def close(self) -> None:
        await self.http.close()
        self._clients.clear()

    @asynccontextmanager
    async def lifecycle(self) -> AsyncIterator[BooruContainer]:
        try:
            await self.initialize()
            yield self
        finally:
            await self.close()

    def rate_limiter(self, site: str) -> RateLimiter:
        site = site.lower()
        if site not in self._limiters:
            self._limiters[site] = RateLimiter(
                permits=self.config.rate_limit.permits,
                window=self.config.rate_limit.window_seconds,
                name=site,
            )
        return self._limiters[site]

    def client(self, site: str) -> BooruClient:
        site = site.lower()
        if site not in self._clients:
            site_config = self.config.site(site)
            adapter = adapter_class(site)(self.http, base_url=site_config.base_url)
            executor = RequestExecutor(self.rate_limiter(site), self.cache, self.retry_policy)

            def apply_credentials(builder: QueryBuilder) -> None:
                if site_config.has_credentials:
                    builder.set_credentials(site_config.api_key, site_config.user_id)

            self._clients[site] = BooruClient(adapter, executor, configure_builder=apply_credentials)
            self.logger.debug(
                "Client created",
                site=site,
                base_url=adapter.base_url,
                authenticated=site_config.has_credentials,
            )
        return self._clients[site]

    def downloader(self, options: Optional[DownloadOptions] = None) -> Downloader:
        return Downloader(self.http, options)
