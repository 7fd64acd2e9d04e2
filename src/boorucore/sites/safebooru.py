"""Safebooru (https://safebooru.org)."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import ValidationError

from boorucore.errors import DecodeError, PostNotFound
from boorucore.models import SafebooruPost, SafebooruRating, TagSuggestion
from boorucore.protocols import SiteProfile
from boorucore.query import Query
from boorucore.sites.base import BaseAdapter, decode_json, parse_post_count_from_label

SAFEBOORU = SiteProfile(
    name="safebooru",
    base_url="https://safebooru.org",
    max_tags=0,
    requires_auth=False,
    sort_prefix="sort:",
    rating_type=SafebooruRating,
)

_DAPI = {"page": "dapi", "s": "post", "q": "index", "json": 1}


class SafebooruAdapter(BaseAdapter):
    profile = SAFEBOORU
    post_model = SafebooruPost

    def _extract_posts(self, text: str) -> List[SafebooruPost]:
        # An empty body means no results
        if not text.strip():
            return []
        return self._parse_posts(decode_json(self.site_name(), text))

    async def fetch(self, query: Query) -> List[SafebooruPost]:
        params: Dict[str, Any] = {**_DAPI, "pid": query.page, "limit": query.limit, "tags": query.tag_string()}
        response = await self._get("/index.php", params)
        return self._extract_posts(response.text)

    async def fetch_by_id(self, post_id: int, query: Query) -> SafebooruPost:
        response = await self._get("/index.php", {**_DAPI, "id": post_id})
        posts = self._extract_posts(response.text)
        if not posts:
            raise PostNotFound(post_id)
        return posts[0]

    async def suggest(self, prefix: str, limit: int = 10) -> List[TagSuggestion]:
        """Safebooru ignores any limit parameter, so the list is truncated here."""
        response = await self._get("/autocomplete.php", {"q": prefix})
        items = decode_json(self.site_name(), response.text) or []
        try:
            return [
                TagSuggestion(
                    name=item["value"],
                    label=item["label"],
                    post_count=parse_post_count_from_label(item["label"]),
                )
                for item in items[:limit]
            ]
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise DecodeError(f"safebooru returned autocomplete data in an unexpected shape: {e}") from e
