"""Danbooru (https://danbooru.donmai.us)."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from boorucore.errors import DecodeError, InvalidRequest, PostNotFound
from boorucore.models import DanbooruPost, DanbooruRating, TagSuggestion
from boorucore.protocols import SiteProfile
from boorucore.query import Query
from boorucore.sites.base import BaseAdapter, decode_json

DANBOORU = SiteProfile(
    name="danbooru",
    base_url="https://danbooru.donmai.us",
    max_tags=2,
    requires_auth=False,
    sort_prefix="order:",
    rating_type=DanbooruRating,
)


class DanbooruAdapter(BaseAdapter):
    """
    Danbooru's native JSON API.

    Pages are 1-based on the wire. Anonymous users are limited to two tags per
    search; credentials go in ``login`` and ``api_key``.
    """

    profile = DANBOORU
    post_model = DanbooruPost

    def _auth_params(self, query: Optional[Query]) -> Dict[str, str]:
        if query is None or query.credentials is None:
            return {}
        return {"login": query.credentials.user_id, "api_key": query.credentials.api_key}

    async def fetch(self, query: Query) -> List[DanbooruPost]:
        params: Dict[str, Any] = {
            "limit": query.limit,
            "page": query.page + 1,
            "tags": query.tag_string(),
            **self._auth_params(query),
        }
        response = await self._get("/posts.json", params)
        return self._parse_posts(decode_json(self.site_name(), response.text))

    async def fetch_by_id(self, post_id: int, query: Query) -> DanbooruPost:
        try:
            response = await self._get(f"/posts/{post_id}.json", self._auth_params(query))
        except InvalidRequest as e:
            if e.status == 404:
                raise PostNotFound(post_id) from e
            raise

        raw = decode_json(self.site_name(), response.text)
        if not raw:
            raise PostNotFound(post_id)
        try:
            return DanbooruPost.model_validate(raw)
        except ValidationError as e:
            raise DecodeError(f"danbooru returned post {post_id} in an unexpected shape: {e}") from e

    async def suggest(self, prefix: str, limit: int = 10) -> List[TagSuggestion]:
        params = {"search[query]": prefix, "search[type]": "tag_query", "limit": limit}
        response = await self._get("/autocomplete.json", params)
        items = decode_json(self.site_name(), response.text) or []
        try:
            return [
                TagSuggestion(
                    name=item["value"],
                    label=item.get("label", item["value"]),
                    post_count=item.get("post_count"),
                    category=item.get("category"),
                )
                for item in items
            ]
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise DecodeError(f"danbooru returned autocomplete data in an unexpected shape: {e}") from e
