"""
Shared plumbing for site adapters.

Concrete adapters declare a ``SiteProfile`` and a post model, build request
parameters and pick the post list out of the decoded body. Status
translation, JSON decoding and label parsing live here so every site maps
failures onto the same error taxonomy.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from boorucore.client.http_client import HttpClient, HttpResponse
from boorucore.errors import DecodeError, InvalidRequest, NetworkError, RateLimited, Unauthorized
from boorucore.protocols import SiteProfile
from boorucore.query import Query

logger = structlog.get_logger(__name__)

_LABEL_COUNT = re.compile(r"\((\d+)\)\s*$")


def parse_post_count_from_label(label: str) -> Optional[int]:
    """Extract the trailing post count from labels like ``"cat_ears (177448)"``."""
    match = _LABEL_COUNT.search(label)
    return int(match.group(1)) if match else None


def _retry_after(headers: Dict[str, str]) -> Optional[float]:
    value = next((v for name, v in headers.items() if name.lower() == "retry-after"), None)
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form is not worth parsing here
        return None


def check_status(site: str, response: HttpResponse) -> None:
    """Raise the taxonomy error matching a non-2xx status."""
    status = response.status
    if 200 <= status < 300:
        return
    logger.debug("Translating HTTP status", site=site, status=status, url=response.url)
    if status in (401, 403):
        raise Unauthorized(f"{site} rejected the request credentials (HTTP {status})")
    if status == 429:
        raise RateLimited(site, retry_after=_retry_after(response.headers))
    if status >= 500:
        raise NetworkError(f"{site} returned HTTP {status}", status=status)
    raise InvalidRequest(f"{site} rejected the request (HTTP {status})", status=status)


def decode_json(site: str, text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"{site} returned a body that is not JSON: {e}") from e


class BaseAdapter(ABC):
    """Base class for the bundled site adapters."""

    profile: SiteProfile
    post_model: Type[BaseModel]

    def __init__(self, http: HttpClient, base_url: Optional[str] = None) -> None:
        self.http = http
        self.base_url = (base_url or self.profile.base_url).rstrip("/")
        self._posts_adapter = TypeAdapter(List[self.post_model])  # type: ignore[name-defined]

    def site_name(self) -> str:
        return self.profile.name

    def max_tags(self) -> int:
        return self.profile.max_tags

    def requires_auth(self) -> bool:
        return self.profile.requires_auth

    @abstractmethod
    async def fetch(self, query: Query) -> List[Any]:
        pass

    @abstractmethod
    async def fetch_by_id(self, post_id: int, query: Query) -> Any:
        pass

    def _auth_params(self, query: Optional[Query]) -> Dict[str, str]:
        if query is None or query.credentials is None:
            return {}
        return {"api_key": query.credentials.api_key, "user_id": query.credentials.user_id}

    async def _get(self, path: str, params: Dict[str, Any]) -> HttpResponse:
        response = await self.http.get(f"{self.base_url}{path}", params=params)
        check_status(self.site_name(), response)
        return response

    def _parse_posts(self, raw: Any) -> List[Any]:
        try:
            return self._posts_adapter.validate_python(raw)
        except ValidationError as e:
            raise DecodeError(f"{self.site_name()} returned posts in an unexpected shape: {e}") from e
