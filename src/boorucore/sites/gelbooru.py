"""Gelbooru (https://gelbooru.com)."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import ValidationError

from boorucore.errors import DecodeError, PostNotFound
from boorucore.models import GelbooruPost, GelbooruRating, TagSuggestion
from boorucore.protocols import SiteProfile
from boorucore.query import Query
from boorucore.sites.base import BaseAdapter, decode_json, parse_post_count_from_label

GELBOORU = SiteProfile(
    name="gelbooru",
    base_url="https://gelbooru.com",
    max_tags=0,
    requires_auth=True,
    sort_prefix="sort:",
    rating_type=GelbooruRating,
)


class GelbooruAdapter(BaseAdapter):
    """Gelbooru's DAPI. Requires ``api_key`` and ``user_id``."""

    profile = GELBOORU
    post_model = GelbooruPost

    def _dapi_params(self, query: Query) -> Dict[str, Any]:
        return {"page": "dapi", "s": "post", "q": "index", "json": 1, **self._auth_params(query)}

    def _extract_posts(self, text: str) -> List[GelbooruPost]:
        if not text.strip():
            return []
        body = decode_json(self.site_name(), text)
        # "post" is omitted entirely when there are no results
        if isinstance(body, dict):
            return self._parse_posts(body.get("post", []))
        return self._parse_posts(body)

    async def fetch(self, query: Query) -> List[GelbooruPost]:
        params = {
            **self._dapi_params(query),
            "pid": query.page,
            "limit": query.limit,
            "tags": query.tag_string(),
        }
        response = await self._get("/index.php", params)
        return self._extract_posts(response.text)

    async def fetch_by_id(self, post_id: int, query: Query) -> GelbooruPost:
        response = await self._get("/index.php", {**self._dapi_params(query), "id": post_id})
        posts = self._extract_posts(response.text)
        if not posts:
            raise PostNotFound(post_id)
        return posts[0]

    async def suggest(self, prefix: str, limit: int = 10) -> List[TagSuggestion]:
        params = {"page": "autocomplete2", "term": prefix, "type": "tag_query", "limit": limit}
        response = await self._get("/index.php", params)
        items = decode_json(self.site_name(), response.text) or []
        try:
            return [
                TagSuggestion(
                    name=item["value"],
                    label=item.get("label", item["value"]),
                    post_count=item.get("post_count") or parse_post_count_from_label(item.get("label", "")),
                    category=item.get("category"),
                )
                for item in items
            ]
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise DecodeError(f"gelbooru returned autocomplete data in an unexpected shape: {e}") from e
