"""
Asynchronous pagination over a query.

``PageStream`` walks pages ``query.page, query.page + 1, ...`` through the
``RequestExecutor`` and yields each non-empty page. ``PostStream`` flattens
those pages into individual posts and enforces an optional ``max_posts`` cap.

Both are forward-only and not restartable. An error from the executor is
raised from the pull that hit it; the stream is then ``FAILED`` and the next
pull ends iteration. Abandoning a stream is just not pulling any more: the
only work ever in flight is the current page fetch.
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import TYPE_CHECKING, Deque, List, Optional

import structlog

from boorucore.errors import BooruError
from boorucore.observability import increment
from boorucore.protocols import Post, SiteAdapter
from boorucore.query import Query

if TYPE_CHECKING:
    from boorucore.client.executor import RequestExecutor

logger = structlog.get_logger(__name__)


class StreamState(Enum):
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class PageStream:
    """Yields whole pages until an empty page, ``max_pages`` or an error."""

    def __init__(
        self,
        query: Query,
        adapter: SiteAdapter,
        executor: RequestExecutor,
        max_pages: Optional[int] = None,
    ) -> None:
        if max_pages is not None and max_pages < 0:
            raise ValueError(f"max_pages must be >= 0, got {max_pages}")
        self.query = query
        self.adapter = adapter
        self.executor = executor
        self.max_pages = max_pages
        self.current_page = query.page
        self.pages_fetched = 0
        self.state = StreamState.ACTIVE
        self.error: Optional[BooruError] = None

    def _finish(self, state: StreamState, reason: str) -> None:
        self.state = state
        logger.debug(
            "Stream finished",
            site=self.adapter.site_name(),
            state=state.value,
            reason=reason,
            page=self.current_page,
        )

    async def next_page(self) -> Optional[List[Post]]:
        """Fetch the next page, or return ``None`` once the stream has ended."""
        if self.state is not StreamState.ACTIVE:
            return None
        if self.max_pages is not None and self.pages_fetched >= self.max_pages:
            self._finish(StreamState.EXHAUSTED, "max_pages")
            return None

        try:
            page = await self.executor.execute(self.query.with_page(self.current_page), self.adapter)
        except BooruError as e:
            self.error = e
            self._finish(StreamState.FAILED, type(e).__name__)
            raise

        if not page:
            self._finish(StreamState.EXHAUSTED, "empty_page")
            return None

        self.pages_fetched += 1
        self.current_page += 1
        return page

    def __aiter__(self) -> PageStream:
        return self

    async def __anext__(self) -> List[Post]:
        page = await self.next_page()
        if page is None:
            raise StopAsyncIteration
        return page


class PostStream:
    """
    Lazily yields individual posts across pages.

    Example:
        async for post in client.builder().tag("cat_ears").into_post_stream(max_posts=50):
            print(post.id)
    """

    def __init__(
        self,
        query: Query,
        adapter: SiteAdapter,
        executor: RequestExecutor,
        max_posts: Optional[int] = None,
        max_pages: Optional[int] = None,
    ) -> None:
        if max_posts is not None and max_posts < 0:
            raise ValueError(f"max_posts must be >= 0, got {max_posts}")
        self._pages = PageStream(query, adapter, executor, max_pages=max_pages)
        self.max_posts = max_posts
        self.posts_yielded = 0
        self._buffer: Deque[Post] = deque()
        self._fetched = 0
        self._capped = False

    @property
    def state(self) -> StreamState:
        if self._capped and self._pages.state is StreamState.ACTIVE:
            return StreamState.EXHAUSTED
        return self._pages.state

    @property
    def current_page(self) -> int:
        return self._pages.current_page

    @property
    def error(self) -> Optional[BooruError]:
        return self._pages.error

    def __aiter__(self) -> PostStream:
        return self

    async def __anext__(self) -> Post:
        while not self._buffer:
            if self._capped or (self.max_posts is not None and self._fetched >= self.max_posts):
                self._capped = True
                raise StopAsyncIteration

            page = await self._pages.next_page()
            if page is None:
                raise StopAsyncIteration

            if self.max_posts is not None:
                remaining = self.max_posts - self._fetched
                if len(page) >= remaining:
                    page = page[:remaining]
                    self._capped = True
            self._fetched += len(page)
            self._buffer.extend(page)

        self.posts_yielded += 1
        increment("posts_streamed_total", labels={"site": self._pages.adapter.site_name()})
        return self._buffer.popleft()

    async def collect(self) -> List[Post]:
        """Drain the stream into a list. Raises the first error encountered."""
        return [post async for post in self]
