"""Request orchestration: rate limiting, caching, retries, execution and streaming."""

from .booru_client import BooruClient
from .cache import CacheEntry, ResponseCache
from .executor import RequestExecutor
from .http_client import HttpClient, HttpResponse
from .rate_limiter import RateLimiter
from .retry import RetryPolicy
from .stream import PageStream, PostStream, StreamState

__all__ = [
    "BooruClient",
    "CacheEntry",
    "HttpClient",
    "HttpResponse",
    "PageStream",
    "PostStream",
    "RateLimiter",
    "RequestExecutor",
    "ResponseCache",
    "RetryPolicy",
    "StreamState",
]
