"""
boorucore - async client for booru image boards.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .client import BooruClient, PostStream, RateLimiter, RequestExecutor, ResponseCache, RetryPolicy
from .config import Config
from .container import BooruContainer
from .errors import BooruError
from .protocols import Sort
from .query import Query, QueryBuilder

__all__ = [
    "__version__",
    "BooruClient",
    "BooruContainer",
    "BooruError",
    "Config",
    "PostStream",
    "Query",
    "QueryBuilder",
    "RateLimiter",
    "RequestExecutor",
    "ResponseCache",
    "RetryPolicy",
    "Sort",
]
