"""
Unit tests for PageStream and PostStream.
"""

import re

import pytest
from aioresponses import aioresponses

from boorucore.client.stream import PageStream, PostStream, StreamState
from boorucore.errors import DecodeError, NetworkError, Unauthorized
from boorucore.query import QueryBuilder
from boorucore.sites import SAFEBOORU, SafebooruAdapter
from conftest import FAKE_SITE, FakeAdapter, make_posts

SAFEBOORU_API = re.compile(r"^https://safebooru\.org/index\.php.*$")


def three_pages():
    """Pages of 10, 10 and 10 posts followed by an empty page."""
    return {0: make_posts(1, 10), 1: make_posts(11, 10), 2: make_posts(21, 10), 3: []}


@pytest.fixture
def query():
    return QueryBuilder(FAKE_SITE).tag("landscape").limit(10).build()


@pytest.mark.unit
class TestPostStream:
    @pytest.mark.asyncio
    async def test_uncapped_stream_yields_every_post_then_exhausts(self, executor, query):
        adapter = FakeAdapter(three_pages())
        stream = PostStream(query, adapter, executor)

        posts = [post async for post in stream]

        assert [p.id for p in posts] == list(range(1, 31))
        assert adapter.calls == [0, 1, 2, 3]
        assert stream.state is StreamState.EXHAUSTED
        assert stream.posts_yielded == 30

    @pytest.mark.asyncio
    async def test_cap_inside_a_page_truncates_and_stops_fetching(self, executor, query):
        adapter = FakeAdapter(three_pages())
        stream = PostStream(query, adapter, executor, max_posts=15)

        posts = await stream.collect()

        assert [p.id for p in posts] == list(range(1, 16))
        assert adapter.calls == [0, 1]
        assert stream.state is StreamState.EXHAUSTED

    @pytest.mark.asyncio
    async def test_cap_on_page_boundary_makes_no_extra_request(self, executor, query):
        adapter = FakeAdapter(three_pages())
        posts = await PostStream(query, adapter, executor, max_posts=20).collect()
        assert len(posts) == 20
        assert adapter.calls == [0, 1]

    @pytest.mark.asyncio
    async def test_zero_cap_fetches_nothing(self, executor, query):
        adapter = FakeAdapter(three_pages())
        assert await PostStream(query, adapter, executor, max_posts=0).collect() == []
        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_empty_first_page(self, executor, query):
        stream = PostStream(query, FakeAdapter({}), executor)
        assert await stream.collect() == []
        assert stream.state is StreamState.EXHAUSTED

    @pytest.mark.asyncio
    async def test_starts_from_query_page(self, executor):
        query = QueryBuilder(FAKE_SITE).page(2).build()
        adapter = FakeAdapter(three_pages())
        posts = await PostStream(query, adapter, executor).collect()
        assert [p.id for p in posts] == list(range(21, 31))
        assert adapter.calls == [2, 3]

    @pytest.mark.asyncio
    async def test_error_surfaces_on_pull_then_stream_ends(self, executor, query):
        """Posts before the failure are delivered, then the error, then nothing."""
        pages = three_pages()
        pages[1] = Unauthorized("credentials rejected")
        adapter = FakeAdapter(pages)
        stream = PostStream(query, adapter, executor)

        received = []
        with pytest.raises(Unauthorized):
            async for post in stream:
                received.append(post.id)

        assert received == list(range(1, 11))
        assert stream.state is StreamState.FAILED
        assert isinstance(stream.error, Unauthorized)

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        assert adapter.calls == [0, 1]

    @pytest.mark.asyncio
    async def test_no_cross_page_retry_beyond_policy(self, executor, query):
        pages = three_pages()
        pages[0] = NetworkError("down")
        adapter = FakeAdapter(pages)

        with pytest.raises(NetworkError):
            await PostStream(query, adapter, executor).collect()
        assert adapter.calls == [0, 0, 0]

    @pytest.mark.asyncio
    async def test_max_pages(self, executor, query):
        adapter = FakeAdapter(three_pages())
        stream = PostStream(query, adapter, executor, max_pages=2)
        assert len(await stream.collect()) == 20
        assert adapter.calls == [0, 1]

    @pytest.mark.asyncio
    async def test_current_page_advances(self, executor, query):
        stream = PostStream(query, FakeAdapter(three_pages()), executor)
        assert stream.current_page == 0
        await stream.__anext__()
        assert stream.current_page == 1

    @pytest.mark.asyncio
    async def test_pages_served_from_cache_on_second_stream(self, executor, query):
        adapter = FakeAdapter(three_pages())
        first = await PostStream(query, adapter, executor).collect()
        second = await PostStream(query, adapter, executor).collect()
        assert first == second
        assert adapter.calls == [0, 1, 2, 3]

    def test_negative_cap_rejected(self, executor, query):
        with pytest.raises(ValueError):
            PostStream(query, FakeAdapter(), executor, max_posts=-1)


@pytest.mark.unit
class TestPageStream:
    @pytest.mark.asyncio
    async def test_yields_whole_pages(self, executor, query):
        pages = [page async for page in PageStream(query, FakeAdapter(three_pages()), executor)]
        assert [len(p) for p in pages] == [10, 10, 10]

    @pytest.mark.asyncio
    async def test_max_pages_zero(self, executor, query):
        adapter = FakeAdapter(three_pages())
        stream = PageStream(query, adapter, executor, max_pages=0)
        assert [page async for page in stream] == []
        assert adapter.calls == []
        assert stream.state is StreamState.EXHAUSTED


@pytest.mark.unit
class TestStreamOverHttp:
    @pytest.mark.asyncio
    async def test_undecodable_body_fails_stream_without_refetch(self, http_client, executor):
        adapter = SafebooruAdapter(http_client)
        stream = PostStream(QueryBuilder(SAFEBOORU).tag("landscape").build(), adapter, executor)

        with aioresponses() as m:
            m.get(SAFEBOORU_API, body=b"\xff\xfe", content_type="application/json; charset=utf-8", repeat=True)
            with pytest.raises(DecodeError):
                await stream.__anext__()
            with pytest.raises(StopAsyncIteration):
                await stream.__anext__()
            requests = sum(len(calls) for calls in m.requests.values())

        assert stream.state is StreamState.FAILED
        assert isinstance(stream.error, DecodeError)
        assert requests == 1
