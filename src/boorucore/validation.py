"""
Tag normalization and validation.

Booru tags are single tokens: lowercase, words joined by underscores. Users
frequently type them the way they read them ("cat ears", "Kafuu Chino"), so
validation normalizes instead of rejecting wherever the intent is clear.

Normalization rules:
- leading/trailing whitespace is trimmed silently
- case is folded to lowercase silently (every supported booru stores tags
  lowercase, so folding never changes which tag is matched)
- runs of interior whitespace become a single underscore, with a warning
- empty or whitespace-only input is rejected with ``InvalidTag``
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from boorucore.errors import InvalidTag

MAX_TAG_LENGTH = 100

_WHITESPACE_RUN = re.compile(r"\s+")

# Characters that appear in legitimate tags and meta-tag syntax.
_ALLOWED_PUNCTUATION = frozenset("_-:()<>=.*?'!/&+~,;@#$%^[]{}|\"")

_COMMON_META_TAGS = frozenset(
    ["rating", "score", "order", "sort", "user", "height", "width", "id", "md5", "source", "parent", "pool"]
)
_DANBOORU_ONLY_META_TAGS = frozenset(
    [
        "pixiv_id",
        "favcount",
        "gentags",
        "arttags",
        "chartags",
        "copytags",
        "approver",
        "commenter",
        "noter",
        "flagger",
    ]
)


class WarningKind(Enum):
    SPACES_FOUND = "spaces_found"
    CONSECUTIVE_UNDERSCORES = "consecutive_underscores"
    VERY_LONG_TAG = "very_long_tag"
    UNUSUAL_CHARACTERS = "unusual_characters"
    UNSUPPORTED_META_TAG = "unsupported_meta_tag"


@dataclass(frozen=True)
class TagWarning:
    """A non-fatal observation about a tag."""

    kind: WarningKind
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class TagValidation:
    """Outcome of validating a single raw tag."""

    original: str
    tag: Optional[str]
    warnings: List[TagWarning] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.tag is not None

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def validate_tag(raw: str) -> TagValidation:
    """Normalize ``raw`` and collect warnings. Never raises.

    An invalid tag is reported with ``tag=None``; use ``validate_tag_strict``
    to get an exception instead.
    """
    trimmed = raw.strip()
    if not trimmed:
        return TagValidation(original=raw, tag=None)

    warnings: List[TagWarning] = []
    normalized = trimmed.lower()

    if _WHITESPACE_RUN.search(normalized):
        suggested = _WHITESPACE_RUN.sub("_", normalized)
        warnings.append(
            TagWarning(
                WarningKind.SPACES_FOUND,
                f"Tag contains spaces: {trimmed!r}. Did you mean {suggested!r}?",
            )
        )
        normalized = suggested

    if "__" in normalized:
        warnings.append(TagWarning(WarningKind.CONSECUTIVE_UNDERSCORES, "Tag contains consecutive underscores"))

    if len(normalized) > MAX_TAG_LENGTH:
        warnings.append(
            TagWarning(
                WarningKind.VERY_LONG_TAG,
                f"Tag is very long ({len(normalized)} chars), may cause issues",
            )
        )

    unusual = sorted({c for c in normalized if not c.isalnum() and c not in _ALLOWED_PUNCTUATION})
    if unusual:
        warnings.append(
            TagWarning(
                WarningKind.UNUSUAL_CHARACTERS,
                f"Tag contains unusual characters: {''.join(unusual)!r}",
            )
        )

    prefix, sep, _ = normalized.lstrip("-").partition(":")
    if sep and prefix not in _COMMON_META_TAGS and prefix in _DANBOORU_ONLY_META_TAGS:
        warnings.append(
            TagWarning(
                WarningKind.UNSUPPORTED_META_TAG,
                f"Meta tag '{prefix}:' may not be supported on all booru sites",
            )
        )

    return TagValidation(original=raw, tag=normalized, warnings=warnings)


def validate_tag_strict(raw: str) -> str:
    """Return the normalized tag or raise ``InvalidTag``."""
    result = validate_tag(raw)
    if result.tag is None:
        reason = "Tag is empty" if not raw else "Tag contains only whitespace"
        raise InvalidTag(raw, reason)
    return result.tag


def validate_tags(raws: Iterable[str]) -> List[str]:
    """Strictly validate every tag, failing on the first invalid one."""
    return [validate_tag_strict(raw) for raw in raws]
