"""
Core contracts for boorucore.

Every booru site plugs into the request orchestration layer through the
interfaces defined here:

- ``SiteProfile`` describes the static constraints of a site (tag limit,
  authentication, rating vocabulary, sort syntax).
- ``SiteAdapter`` performs the actual HTTP call and deserialization.
- ``Autocomplete`` is the optional tag-suggestion capability.
- ``Post`` is the common read-only view over each site's post record.

The orchestration layer (builder, rate limiter, cache, retry policy, executor,
stream) only ever talks to these interfaces, never to a concrete site.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence, Type, runtime_checkable

if TYPE_CHECKING:
    from boorucore.models import TagSuggestion
    from boorucore.query import Query


class Sort(Enum):
    """Result ordering, rendered as ``<site sort prefix><value>``."""

    ID = "id"
    SCORE = "score"
    RATING = "rating"
    USER = "user"
    HEIGHT = "height"
    WIDTH = "width"
    SOURCE = "source"
    UPDATED = "updated"
    RANDOM = "random"


@dataclass(frozen=True)
class SiteProfile:
    """Static description of a booru site's query constraints."""

    name: str
    base_url: str
    max_tags: int  # 0 = unlimited
    requires_auth: bool
    sort_prefix: str
    rating_type: Type[Enum]

    def coerce_rating(self, rating: Enum | str) -> Enum:
        """Return ``rating`` as a member of this site's rating enumeration.

        Raises:
            TypeError: if ``rating`` belongs to another site's vocabulary.
            ValueError: if ``rating`` is a string this site does not know.
        """
        if isinstance(rating, self.rating_type):
            return rating
        if isinstance(rating, Enum):
            raise TypeError(
                f"{self.name} expects a {self.rating_type.__name__}, got {type(rating).__name__}.{rating.name}"
            )
        return self.rating_type(rating)


@runtime_checkable
class Post(Protocol):
    """Fields every site's post record exposes."""

    @property
    def id(self) -> int: ...

    @property
    def file_url(self) -> Optional[str]: ...

    @property
    def preview_url(self) -> Optional[str]: ...

    @property
    def sample_url(self) -> Optional[str]: ...

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    @property
    def rating(self) -> Optional[Enum]: ...

    @property
    def tags(self) -> Sequence[str]: ...

    @property
    def md5(self) -> Optional[str]: ...


class SiteAdapter(Protocol):
    """Per-site HTTP request construction and response decoding.

    Adapters translate site-specific failures into the shared error taxonomy
    (401 -> ``Unauthorized``, 429 -> ``RateLimited`` and so on). They are only
    ever invoked through ``RequestExecutor``.
    """

    profile: SiteProfile
    post_model: Type[Post]

    def site_name(self) -> str: ...

    def max_tags(self) -> int: ...

    def requires_auth(self) -> bool: ...

    async def fetch(self, query: Query) -> List[Post]: ...

    async def fetch_by_id(self, post_id: int, query: Query) -> Post: ...


@runtime_checkable
class Autocomplete(Protocol):
    """Optional tag-suggestion capability."""

    async def suggest(self, prefix: str, limit: int = 10) -> List[TagSuggestion]: ...
