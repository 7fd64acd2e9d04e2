"""
Unit tests for RequestExecutor.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from boorucore.client.executor import RequestExecutor
from boorucore.client.rate_limiter import RateLimiter
from boorucore.client.retry import RetryPolicy
from boorucore.errors import InvalidRequest, NetworkError, PostNotFound, Unauthorized
from boorucore.query import QueryBuilder
from conftest import FAKE_SITE, FakeAdapter, Script, SleepRecorder, make_posts


@pytest.fixture
def query():
    return QueryBuilder(FAKE_SITE).tag("cat_ears").limit(3).build()


@pytest.mark.unit
class TestRequestExecutor:
    @pytest.mark.asyncio
    async def test_miss_fetches_and_caches(self, executor, cache, query):
        adapter = FakeAdapter({0: make_posts(1, 3)})
        posts = await executor.execute(query, adapter)
        assert [p.id for p in posts] == [1, 2, 3]
        assert adapter.calls == [0]
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_hit_skips_adapter_and_limiter(self, cache, query):
        """A cached page costs neither a network call nor a permit."""
        limiter = RateLimiter(permits=1, window=60.0)
        executor = RequestExecutor(limiter, cache, RetryPolicy(sleep=SleepRecorder()))
        adapter = FakeAdapter({0: make_posts(1, 3)})

        first = await executor.execute(query, adapter)
        assert limiter.available == 0

        acquire = AsyncMock(wraps=limiter.acquire)
        limiter.acquire = acquire
        second = await asyncio.wait_for(executor.execute(query, adapter), timeout=1.0)

        assert second == first
        assert adapter.calls == [0]
        acquire.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_equivalent_queries_share_cache_entry(self, executor):
        adapter = FakeAdapter({0: make_posts(1, 2)})
        a = QueryBuilder(FAKE_SITE).tag("x").tag("y").build()
        b = QueryBuilder(FAKE_SITE).tag("y").tag("x").build()
        await executor.execute(a, adapter)
        await executor.execute(b, adapter)
        assert adapter.calls == [0]

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, executor, cache, query):
        adapter = FakeAdapter({0: Script(Unauthorized("no key"), make_posts(1, 1))})
        with pytest.raises(Unauthorized):
            await executor.execute(query, adapter)
        assert len(cache) == 0

        posts = await executor.execute(query, adapter)
        assert [p.id for p in posts] == [1]
        assert adapter.calls == [0, 0]

    @pytest.mark.asyncio
    async def test_transient_failure_retried_within_one_permit(self, cache, query, sleep_recorder):
        limiter = RateLimiter(permits=5, window=60.0)
        executor = RequestExecutor(limiter, cache, RetryPolicy(max_attempts=3, sleep=sleep_recorder))
        adapter = FakeAdapter({0: Script(NetworkError("reset"), NetworkError("reset"), make_posts(1, 2))})

        posts = await executor.execute(query, adapter)

        assert len(posts) == 2
        assert adapter.calls == [0, 0, 0]
        assert limiter.available == 4
        assert len(sleep_recorder.delays) == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_surface_last_error(self, executor, cache, query):
        adapter = FakeAdapter({0: NetworkError("down", status=502)})
        with pytest.raises(NetworkError) as exc_info:
            await executor.execute(query, adapter)
        assert exc_info.value.status == 502
        assert adapter.calls == [0, 0, 0]
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_without_cache_always_fetches(self, fast_limiter, retry_policy, query):
        executor = RequestExecutor(fast_limiter, None, retry_policy)
        adapter = FakeAdapter({0: make_posts(1, 1)})
        await executor.execute(query, adapter)
        await executor.execute(query, adapter)
        assert adapter.calls == [0, 0]

    @pytest.mark.asyncio
    async def test_execute_by_id_cached(self, executor, query):
        adapter = FakeAdapter({0: make_posts(1, 3)})
        post = await executor.execute_by_id(2, query, adapter)
        again = await executor.execute_by_id(2, query, adapter)
        assert post.id == again.id == 2
        assert adapter.by_id_calls == [2]

    @pytest.mark.asyncio
    async def test_execute_by_id_not_found(self, executor, query):
        with pytest.raises(PostNotFound):
            await executor.execute_by_id(404, query, FakeAdapter())

    @pytest.mark.asyncio
    async def test_suggest_requires_autocomplete_capability(self, executor):
        with pytest.raises(InvalidRequest):
            await executor.execute_suggest("cat", 5, FakeAdapter())
