"""
Thin aiohttp wrapper shared by every site adapter.

One ``HttpClient`` owns one pooled ``aiohttp.ClientSession``. It is created
explicitly (usually by ``BooruContainer``) and handed to adapters; there is no
module-level session. Transport failures and timeouts surface as
``NetworkError`` so the retry policy can classify them.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Mapping, Optional

import aiohttp
import structlog

from boorucore.config.config import HttpConfig
from boorucore.errors import DecodeError, NetworkError

logger = structlog.get_logger(__name__)


@dataclass
class HttpResponse:
    """Fully-read response body with its status and lower-cased header names."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _clean_params(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, str]]:
    if params is None:
        return None
    return {k: str(v) for k, v in params.items() if v is not None}


class HttpClient:
    """Pooled HTTP session used as an async context manager."""

    def __init__(self, config: Optional[HttpConfig] = None) -> None:
        self.config = config or HttpConfig()
        self.session: Optional[aiohttp.ClientSession] = None
        self._is_initialized = False

    async def initialize(self) -> None:
        """Open the session. Safe to call more than once."""
        if self.session is None:
            connector = aiohttp.TCPConnector(
                limit_per_host=self.config.pool_size,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            timeout = aiohttp.ClientTimeout(total=self.config.timeout, connect=self.config.connect_timeout)
            self.session = aiohttp.ClientSession(
                connector=connector, timeout=timeout, headers={"User-Agent": self.config.user_agent}
            )
            self._is_initialized = True
            logger.debug("HTTP client session initialized", user_agent=self.config.user_agent)

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None
        self._is_initialized = False
        logger.debug("HTTP client closed")

    async def __aenter__(self) -> HttpClient:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _require_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")
        return self.session

    async def get(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse:
        """GET ``url`` and read the whole body as text.

        Any HTTP status is returned as is; deciding what a status means is up
        to the adapter.
        """
        session = self._require_session()
        try:
            async with session.get(url, params=_clean_params(params), headers=headers) as response:
                text = await response.text()
                return HttpResponse(
                    status=response.status,
                    headers={name.lower(): value for name, value in response.headers.items()},
                    text=text,
                    url=str(response.url),
                )
        except UnicodeDecodeError as e:
            raise DecodeError(f"Response from {url} is not valid text in its declared charset: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Request to {url} timed out") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

    @asynccontextmanager
    async def stream(self, url: str) -> AsyncIterator[aiohttp.ClientResponse]:
        """Open ``url`` for incremental reading; non-2xx raises ``NetworkError``."""
        session = self._require_session()
        try:
            async with session.get(url) as response:
                if response.status >= 400:
                    raise NetworkError(f"Download of {url} failed with HTTP {response.status}", status=response.status)
                yield response
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Download of {url} timed out") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Download of {url} failed: {e}") from e
