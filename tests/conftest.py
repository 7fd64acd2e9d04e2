"""
Shared fixtures for the boorucore test suite.

``FakeAdapter`` serves in-memory pages so the orchestration layer (executor,
streams, client facade) can be tested without HTTP. Site adapters themselves
are tested against aioresponses.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import pytest
import pytest_asyncio
from pydantic import BaseModel, ConfigDict

from boorucore.client.cache import ResponseCache
from boorucore.client.executor import RequestExecutor
from boorucore.client.http_client import HttpClient
from boorucore.client.rate_limiter import RateLimiter
from boorucore.client.retry import RetryPolicy
from boorucore.config import HttpConfig
from boorucore.errors import PostNotFound
from boorucore.protocols import SiteProfile


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests for individual components")


# ============================================================================
# Fake site
# ============================================================================


class FakeRating(Enum):
    SAFE = "safe"
    EXPLICIT = "explicit"


class FakePost(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    width: int = 100
    height: int = 100
    file_url: Optional[str] = None
    preview_url: Optional[str] = None
    sample_url: Optional[str] = None
    md5: Optional[str] = None
    rating: Optional[FakeRating] = None
    tags: Tuple[str, ...] = ()


FAKE_SITE = SiteProfile(
    name="fake",
    base_url="https://fake.example",
    max_tags=0,
    requires_auth=False,
    sort_prefix="order:",
    rating_type=FakeRating,
)

LIMITED_SITE = SiteProfile(
    name="limited",
    base_url="https://limited.example",
    max_tags=2,
    requires_auth=True,
    sort_prefix="sort:",
    rating_type=FakeRating,
)


def make_posts(start: int, count: int) -> List[FakePost]:
    return [
        FakePost(id=i, md5=f"{i:032x}", file_url=f"https://cdn.fake.example/{i}.png", rating=FakeRating.SAFE)
        for i in range(start, start + count)
    ]


class Script:
    """Outcomes for one page, consumed one per call; the last one repeats."""

    def __init__(self, *steps: Union[List[FakePost], Exception]) -> None:
        self.steps = list(steps)

    def next(self) -> Union[List[FakePost], Exception]:
        if len(self.steps) > 1:
            return self.steps.pop(0)
        return self.steps[0]


PageScript = Union[List[FakePost], Exception, Script]


class FakeAdapter:
    """
    In-memory site adapter.

    ``pages`` maps a page number to the posts it returns, an exception to
    raise, or a ``Script`` of successive outcomes. Missing pages are empty.
    """

    profile = FAKE_SITE
    post_model = FakePost

    def __init__(self, pages: Optional[Dict[int, PageScript]] = None, profile: Optional[SiteProfile] = None) -> None:
        self.pages: Dict[int, PageScript] = dict(pages or {})
        if profile is not None:
            self.profile = profile
        self.calls: List[int] = []
        self.by_id_calls: List[int] = []

    def site_name(self) -> str:
        return self.profile.name

    def max_tags(self) -> int:
        return self.profile.max_tags

    def requires_auth(self) -> bool:
        return self.profile.requires_auth

    async def fetch(self, query) -> List[FakePost]:
        self.calls.append(query.page)
        outcome = self.pages.get(query.page, [])
        if isinstance(outcome, Script):
            outcome = outcome.next()
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)

    async def fetch_by_id(self, post_id: int, query) -> FakePost:
        self.by_id_calls.append(post_id)
        for outcome in self.pages.values():
            if isinstance(outcome, Script):
                outcome = outcome.steps[-1]
            if isinstance(outcome, list):
                for post in outcome:
                    if isinstance(post, FakePost) and post.id == post_id:
                        return post
        raise PostNotFound(post_id)


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fast_limiter() -> RateLimiter:
    return RateLimiter(permits=10_000, window=1.0, name="test")


@pytest.fixture
def cache() -> ResponseCache:
    return ResponseCache()


@pytest.fixture
def retry_policy(sleep_recorder: SleepRecorder) -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay=0.1, max_delay=5.0, sleep=sleep_recorder)


@pytest.fixture
def executor(fast_limiter: RateLimiter, cache: ResponseCache, retry_policy: RetryPolicy) -> RequestExecutor:
    return RequestExecutor(fast_limiter, cache, retry_policy)


@pytest_asyncio.fixture
async def http_client():
    async with HttpClient(HttpConfig(timeout=5.0)) as client:
        yield client
