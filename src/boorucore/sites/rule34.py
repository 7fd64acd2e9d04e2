"""Rule34 (https://api.rule34.xxx)."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import ValidationError

from boorucore.errors import DecodeError, PostNotFound, Unauthorized
from boorucore.models import Rule34Post, Rule34Rating, TagSuggestion
from boorucore.protocols import SiteProfile
from boorucore.query import Query
from boorucore.sites.base import BaseAdapter, decode_json, parse_post_count_from_label

RULE34 = SiteProfile(
    name="rule34",
    base_url="https://api.rule34.xxx",
    max_tags=0,
    requires_auth=True,
    sort_prefix="sort:",
    rating_type=Rule34Rating,
)


class Rule34Adapter(BaseAdapter):
    """
    Rule34's Gelbooru-compatible DAPI.

    Missing credentials are reported with HTTP 200 and a plain-text
    "Missing authentication" body rather than a 401.
    """

    profile = RULE34
    post_model = Rule34Post

    def _extract_posts(self, text: str) -> List[Rule34Post]:
        if "Missing authentication" in text:
            raise Unauthorized("rule34 requires API credentials; use set_credentials(api_key, user_id)")
        if not text.strip() or text.strip() == "[]":
            return []
        return self._parse_posts(decode_json(self.site_name(), text))

    def _dapi_params(self, query: Query) -> Dict[str, Any]:
        return {"page": "dapi", "s": "post", "q": "index", "json": 1, **self._auth_params(query)}

    async def fetch(self, query: Query) -> List[Rule34Post]:
        params = {
            **self._dapi_params(query),
            "pid": query.page,
            "limit": query.limit,
            "tags": query.tag_string(),
        }
        response = await self._get("/index.php", params)
        return self._extract_posts(response.text)

    async def fetch_by_id(self, post_id: int, query: Query) -> Rule34Post:
        response = await self._get("/index.php", {**self._dapi_params(query), "id": post_id})
        posts = self._extract_posts(response.text)
        if not posts:
            raise PostNotFound(post_id)
        return posts[0]

    async def suggest(self, prefix: str, limit: int = 10) -> List[TagSuggestion]:
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
            raise DecodeError(f"rule34 returned autocomplete data in an unexpected shape: {e}") from e
