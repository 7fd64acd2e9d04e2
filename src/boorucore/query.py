"""
Query construction.

``QueryBuilder`` accumulates search parameters for one site and validates
them as they arrive: each ``tag()`` call normalizes the tag and enforces the
site's tag limit immediately, so a bad query fails before any HTTP round
trip. ``build()`` freezes the result into an immutable ``Query`` that can be
shared freely between concurrent fetches.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Tuple

import structlog

from boorucore.errors import TagLimitExceeded
from boorucore.protocols import SiteProfile, Sort
from boorucore.validation import validate_tag, validate_tag_strict

if TYPE_CHECKING:
    from boorucore.client.booru_client import BooruClient
    from boorucore.client.stream import PageStream, PostStream
    from boorucore.protocols import Post

logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 100


@dataclass(frozen=True)
class Credentials:
    """API key and user id for sites that require (or reward) authentication."""

    api_key: str
    user_id: str

    def __repr__(self) -> str:
        return f"Credentials(api_key='***', user_id={self.user_id!r})"


@dataclass(frozen=True)
class Query:
    """A validated, immutable search request for a single site."""

    site: SiteProfile
    tags: Tuple[str, ...] = ()
    rating: Optional[Enum] = None
    sort: Optional[Sort] = None
    blacklist: Tuple[str, ...] = ()
    page: int = 0
    limit: int = DEFAULT_LIMIT
    credentials: Optional[Credentials] = field(default=None, repr=False)

    def search_terms(self) -> List[str]:
        """Render the query as the space-separated terms boorus expect."""
        terms = list(self.tags)
        if self.rating is not None:
            terms.append(f"rating:{self.rating.value}")
        if self.sort is not None:
            terms.append(f"{self.site.sort_prefix}{self.sort.value}")
        terms.extend(f"-{entry}" for entry in self.blacklist)
        return terms

    def tag_string(self) -> str:
        return " ".join(self.search_terms())

    def with_page(self, page: int) -> Query:
        return replace(self, page=page)

    def cache_key(self) -> str:
        return cache_key(self)


def cache_key(query: Query) -> str:
    """Derive a content-addressed cache key for ``query``.

    Tags and blacklist entries are sorted, so builder call order does not
    affect the key. The API key is never part of the key; the user id is,
    because authenticated accounts may see different results.
    """
    canonical: dict[str, Any] = {
        "site": query.site.name,
        "tags": sorted(query.tags),
        "rating": query.rating.value if query.rating is not None else None,
        "sort": query.sort.value if query.sort is not None else None,
        "blacklist": sorted(query.blacklist),
        "page": query.page,
        "limit": query.limit,
        "user": query.credentials.user_id if query.credentials else None,
    }
    digest = hashlib.sha256(json.dumps(canonical, sort_keys=True).encode("utf-8")).hexdigest()
    return f"{query.site.name}:posts:{digest}"


class QueryBuilder:
    """Fluent, fail-fast builder for ``Query``.

    Every mutator returns the builder so calls can be chained. A builder
    created through ``BooruClient.builder()`` is bound to that client and can
    dispatch the query directly with ``get()``, ``get_by_id()`` or
    ``into_post_stream()``.
    """

    def __init__(self, site: SiteProfile, client: Optional[BooruClient] = None) -> None:
        self.site = site
        self._client = client
        self._tags: List[str] = []
        self._rating: Optional[Enum] = None
        self._sort: Optional[Sort] = None
        self._blacklist: List[str] = []
        self._page = 0
        self._limit = DEFAULT_LIMIT
        self._credentials: Optional[Credentials] = None

    # --- Tags ---

    def tag(self, name: str) -> QueryBuilder:
        """Add one tag.

        Raises:
            InvalidTag: if the tag is empty or whitespace-only.
            TagLimitExceeded: if the site's tag limit is already reached.
        """
        normalized = self._normalize(name)
        self._check_limit(len(self._tags) + 1)
        self._tags.append(normalized)
        return self

    def tags(self, names: Iterable[str]) -> QueryBuilder:
        """Add several tags. Either all of them are added or none are."""
        pending: List[str] = []
        for name in names:
            normalized = self._normalize(name)
            self._check_limit(len(self._tags) + len(pending) + 1)
            pending.append(normalized)
        self._tags.extend(pending)
        return self

    def _normalize(self, name: str) -> str:
        result = validate_tag(name)
        for warning in result.warnings:
            logger.warning("Tag normalized", site=self.site.name, tag=name, warning=str(warning))
        return validate_tag_strict(name)

    def _check_limit(self, count: int) -> None:
        max_tags = self.site.max_tags
        if max_tags and count > max_tags:
            raise TagLimitExceeded(site=self.site.name, max=max_tags, actual=count)

    @property
    def tag_count(self) -> int:
        return len(self._tags)

    # --- Filters ---

    def rating(self, rating: Enum | str) -> QueryBuilder:
        self._rating = self.site.coerce_rating(rating)
        return self

    def sort(self, sort: Sort | str) -> QueryBuilder:
        self._sort = sort if isinstance(sort, Sort) else Sort(sort)
        return self

    def random(self) -> QueryBuilder:
        return self.sort(Sort.RANDOM)

    def blacklist_tag(self, name: str) -> QueryBuilder:
        normalized = self._normalize(name)
        if normalized not in self._blacklist:
            self._blacklist.append(normalized)
        return self

    def blacklist_tags(self, names: Iterable[str]) -> QueryBuilder:
        normalized = [self._normalize(name) for name in names]
        for entry in normalized:
            if entry not in self._blacklist:
                self._blacklist.append(entry)
        return self

    def blacklist_rating(self, rating: Enum | str) -> QueryBuilder:
        coerced = self.site.coerce_rating(rating)
        return self.blacklist_tag(f"rating:{coerced.value}")

    # --- Paging and auth ---

    def page(self, page: int) -> QueryBuilder:
        if page < 0:
            raise ValueError(f"page must be >= 0, got {page}")
        self._page = page
        return self

    def limit(self, limit: int) -> QueryBuilder:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._limit = limit
        return self

    def set_credentials(self, api_key: str, user_id: str | int) -> QueryBuilder:
        self._credentials = Credentials(api_key=api_key, user_id=str(user_id))
        return self

    # --- Terminal operations ---

    def build(self) -> Query:
        """Freeze the builder into an immutable ``Query``.

        Missing credentials on an auth-requiring site are not an error here;
        the site reports ``Unauthorized`` at request time.
        """
        if self.site.requires_auth and self._credentials is None:
            logger.debug("Building query without credentials", site=self.site.name)
        return Query(
            site=self.site,
            tags=tuple(self._tags),
            rating=self._rating,
            sort=self._sort,
            blacklist=tuple(self._blacklist),
            page=self._page,
            limit=self._limit,
            credentials=self._credentials,
        )

    def _require_client(self) -> BooruClient:
        if self._client is None:
            raise RuntimeError("QueryBuilder is not bound to a client; use BooruClient.builder()")
        return self._client

    async def get(self) -> List[Post]:
        return await self._require_client().get(self.build())

    async def get_by_id(self, post_id: int) -> Post:
        return await self._require_client().get_by_id(post_id, self.build())

    def into_post_stream(self, max_posts: Optional[int] = None, max_pages: Optional[int] = None) -> PostStream:
        return self._require_client().stream(self.build(), max_posts=max_posts, max_pages=max_pages)

    def into_page_stream(self, max_pages: Optional[int] = None) -> PageStream:
        return self._require_client().pages(self.build(), max_pages=max_pages)
