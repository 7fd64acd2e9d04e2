"""
Error taxonomy shared by every booru site.

Each error class carries a ``transient`` flag. ``RetryPolicy`` retries only
transient errors; everything else surfaces to the caller on the first attempt.
"""

from __future__ import annotations

from typing import Optional


class BooruError(Exception):
    """Base class for all errors raised by boorucore."""

    transient: bool = False


class InvalidTag(BooruError):
    """Tag text is malformed (empty, whitespace-only)."""

    def __init__(self, tag: str, reason: str) -> None:
        self.tag = tag
        self.reason = reason
        super().__init__(f"Invalid tag {tag!r}: {reason}")


class TagLimitExceeded(BooruError):
    """Adding a tag would exceed the site's per-query tag limit."""

    def __init__(self, site: str, max: int, actual: int) -> None:
        self.site = site
        self.max = max
        self.actual = actual
        super().__init__(f"{site} allows a maximum of {max} tags, but {actual} were provided")


class Unauthorized(BooruError):
    """Credentials are missing or were rejected by the site."""


class RateLimited(BooruError):
    """The remote API throttled the request despite local rate limiting."""

    transient = True

    def __init__(self, site: str, retry_after: Optional[float] = None) -> None:
        self.site = site
        self.retry_after = retry_after
        message = f"{site} rate limit exceeded"
        if retry_after is not None:
            message += f", retry after {retry_after:g}s"
        super().__init__(message)


class NetworkError(BooruError):
    """Transport failure, timeout or 5xx response."""

    transient = True

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class DecodeError(BooruError):
    """Response body does not match the expected schema."""


class PostNotFound(BooruError):
    def __init__(self, post_id: int) -> None:
        self.post_id = post_id
        super().__init__(f"Post not found with ID: {post_id}")


class InvalidRequest(BooruError):
    """The site rejected the request as malformed (non-auth 4xx)."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class DownloadError(BooruError):
    """A post could not be downloaded (no file URL, HTTP or filesystem failure)."""

    def __init__(self, message: str, post_id: Optional[int] = None) -> None:
        self.post_id = post_id
        super().__init__(message)


def is_transient(error: BaseException) -> bool:
    """Return True when ``error`` is worth retrying."""
    return isinstance(error, BooruError) and error.transient


__all__ = [
    "BooruError",
    "DecodeError",
    "DownloadError",
    "InvalidRequest",
    "InvalidTag",
    "NetworkError",
    "PostNotFound",
    "RateLimited",
    "TagLimitExceeded",
    "Unauthorized",
    "is_transient",
]
