"""
Downloading post images to disk.

Each file is streamed into a hidden temporary file beside its destination
and renamed into place only once complete, so an interrupted download never
leaves a truncated image under the final name.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union
from urllib.parse import urlparse

import aiofiles
import aiofiles.os
import structlog

from boorucore.client.http_client import HttpClient
from boorucore.errors import BooruError, DownloadError
from boorucore.observability import increment
from boorucore.protocols import Post

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class DownloadOptions:
    overwrite: bool = False
    filename_template: Optional[str] = None  # placeholders: {id}, {md5}, {ext}
    organize_by_rating: bool = False


@dataclass(frozen=True)
class DownloadResult:
    path: Path
    size: int
    skipped: bool = False


@dataclass(frozen=True)
class DownloadProgress:
    post_id: int
    downloaded: int
    total: Optional[int] = None

    @property
    def percentage(self) -> Optional[float]:
        if not self.total:
            return None
        return self.downloaded / self.total * 100.0


ProgressCallback = Callable[[DownloadProgress], None]


def _extension(url: str) -> str:
    name = urlparse(url).path.rsplit("/", 1)[-1]
    if "." not in name:
        return "jpg"
    return name.rsplit(".", 1)[-1] or "jpg"


class Downloader:
    """Saves post files using the shared ``HttpClient`` session."""

    def __init__(self, http: HttpClient, options: Optional[DownloadOptions] = None) -> None:
        self.http = http
        self.options = options or DownloadOptions()

    def filename_for(self, post: Post, url: str) -> str:
        ext = _extension(url)
        if self.options.filename_template:
            return (
                self.options.filename_template.replace("{id}", str(post.id))
                .replace("{md5}", post.md5 or "unknown")
                .replace("{ext}", ext)
            )
        return f"{post.id}.{ext}"

    def destination_for(self, post: Post, url: str, dest_dir: Union[str, Path]) -> Path:
        directory = Path(dest_dir)
        if self.options.organize_by_rating:
            rating = post.rating.value if post.rating is not None else "unknown"
            directory = directory / rating
        return directory / self.filename_for(post, url)

    async def download_url(
        self,
        url: str,
        dest: Union[str, Path],
        progress: Optional[ProgressCallback] = None,
        post_id: int = 0,
    ) -> DownloadResult:
        """Download ``url`` to the file ``dest``."""
        dest = Path(dest)
        if dest.exists() and not self.options.overwrite:
            increment("downloads_total", labels={"outcome": "skipped"})
            logger.debug("File exists, skipping download", path=str(dest))
            return DownloadResult(path=dest, size=dest.stat().st_size, skipped=True)

        await aiofiles.os.makedirs(dest.parent, exist_ok=True)
        tmp_path = dest.with_name(f".{dest.name}.{uuid.uuid4().hex}.part")
        size = 0
        try:
            async with self.http.stream(url) as response:
                total = response.content_length
                async with aiofiles.open(tmp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        await f.write(chunk)
                        size += len(chunk)
                        if progress is not None:
                            progress(DownloadProgress(post_id=post_id, downloaded=size, total=total))
            await aiofiles.os.replace(tmp_path, dest)
        except BaseException:
            if tmp_path.exists():
                await aiofiles.os.remove(tmp_path)
            increment("downloads_total", labels={"outcome": "failed"})
            raise

        increment("downloads_total", labels={"outcome": "downloaded"})
        logger.info("Downloaded file", url=url, path=str(dest), size=size)
        return DownloadResult(path=dest, size=size)

    async def download_post(
        self,
        post: Post,
        dest_dir: Union[str, Path],
        progress: Optional[ProgressCallback] = None,
    ) -> DownloadResult:
        if not post.file_url:
            raise DownloadError(f"Post {post.id} has no file URL", post_id=post.id)
        dest = self.destination_for(post, post.file_url, dest_dir)
        try:
            return await self.download_url(post.file_url, dest, progress=progress, post_id=post.id)
        except OSError as e:
            raise DownloadError(f"Could not write post {post.id} to {dest}: {e}", post_id=post.id) from e

    async def download_posts(
        self,
        posts: Sequence[Post],
        dest_dir: Union[str, Path],
        concurrency: int = 4,
    ) -> List[Union[DownloadResult, BooruError]]:
        """Download ``posts`` with at most ``concurrency`` transfers in flight.

        Returns one entry per post, in input order: the ``DownloadResult`` or
        the ``BooruError`` that stopped that post.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        semaphore = asyncio.Semaphore(concurrency)

        async def _one(post: Post) -> Union[DownloadResult, BooruError]:
            async with semaphore:
                try:
                    return await self.download_post(post, dest_dir)
                except BooruError as e:
                    logger.warning("Download failed", post_id=post.id, error=str(e))
                    return e

        return list(await asyncio.gather(*(_one(post) for post in posts)))
