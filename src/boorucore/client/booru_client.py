"""
Per-site facade tying a query builder to the request executor.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from boorucore.client.executor import RequestExecutor
from boorucore.client.stream import PageStream, PostStream
from boorucore.models import TagSuggestion
from boorucore.protocols import Post, SiteAdapter
from boorucore.query import Query, QueryBuilder


class BooruClient:
    """
    Entry point for querying one site.

    Every call goes through the shared ``RequestExecutor``, so rate limiting
    and caching apply uniformly whether posts are fetched as a single page,
    by id, or streamed.

    Args:
        adapter: The site adapter performing HTTP calls.
        executor: Rate limiter, cache and retry composition.
        configure_builder: Optional hook applied to each new builder
            (``BooruContainer`` uses it to inject configured credentials).
    """

    def __init__(
        self,
        adapter: SiteAdapter,
        executor: RequestExecutor,
        configure_builder: Optional[Callable[[QueryBuilder], None]] = None,
    ) -> None:
        self.adapter = adapter
        self.executor = executor
        self._configure_builder = configure_builder

    @property
    def site(self) -> str:
        return self.adapter.site_name()

    def builder(self) -> QueryBuilder:
        builder = QueryBuilder(self.adapter.profile, client=self)
        if self._configure_builder is not None:
            self._configure_builder(builder)
        return builder

    def _check_site(self, query: Query) -> None:
        if query.site.name != self.adapter.site_name():
            raise ValueError(f"Query was built for {query.site.name}, not {self.adapter.site_name()}")

    async def get(self, query: Query) -> List[Post]:
        self._check_site(query)
        return await self.executor.execute(query, self.adapter)

    async def get_by_id(self, post_id: int, query: Optional[Query] = None) -> Post:
        query = query or self.builder().build()
        self._check_site(query)
        return await self.executor.execute_by_id(post_id, query, self.adapter)

    def stream(self, query: Query, max_posts: Optional[int] = None, max_pages: Optional[int] = None) -> PostStream:
        self._check_site(query)
        return PostStream(query, self.adapter, self.executor, max_posts=max_posts, max_pages=max_pages)

    def pages(self, query: Query, max_pages: Optional[int] = None) -> PageStream:
        self._check_site(query)
        return PageStream(query, self.adapter, self.executor, max_pages=max_pages)

    async def autocomplete(self, prefix: str, limit: int = 10) -> List[TagSuggestion]:
        return await self.executor.execute_suggest(prefix, limit, self.adapter)
