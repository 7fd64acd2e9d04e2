"""
Post records and rating vocabularies for each supported booru.

All records are frozen pydantic models. Site-specific JSON field names are
mapped onto the common ``Post`` fields through aliases, so the same model
validates both the raw API payload and its own serialized form (which is how
the response cache stores it).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Ratings ---


class DanbooruRating(Enum):
    """Danbooru's four-tier rating. The API reports single-letter codes."""

    GENERAL = "general"
    SENSITIVE = "sensitive"
    QUESTIONABLE = "questionable"
    EXPLICIT = "explicit"

    @classmethod
    def _missing_(cls, value: object) -> Optional["DanbooruRating"]:
        codes = {"g": cls.GENERAL, "s": cls.SENSITIVE, "q": cls.QUESTIONABLE, "e": cls.EXPLICIT}
        if isinstance(value, str):
            return codes.get(value.lower())
        return None


class GelbooruRating(Enum):
    GENERAL = "general"
    SENSITIVE = "sensitive"
    SAFE = "safe"
    QUESTIONABLE = "questionable"
    EXPLICIT = "explicit"


class SafebooruRating(Enum):
    """Safebooru is SFW; questionable/explicit only show up on deleted posts."""

    SAFE = "safe"
    GENERAL = "general"
    QUESTIONABLE = "questionable"
    EXPLICIT = "explicit"


class Rule34Rating(Enum):
    GENERAL = "general"
    SENSITIVE = "sensitive"
    SAFE = "safe"
    QUESTIONABLE = "questionable"
    EXPLICIT = "explicit"


# --- Posts ---


class BasePost(BaseModel):
    """Fields shared by every site's post record."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: int
    width: int = 0
    height: int = 0
    file_url: Optional[str] = None
    preview_url: Optional[str] = None
    sample_url: Optional[str] = None
    md5: Optional[str] = None
    tags: Tuple[str, ...] = ()
    score: Optional[int] = None
    source: Optional[str] = None

    @field_validator("file_url", "preview_url", "sample_url", "md5", "source", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> Any:
        if isinstance(v, str):
            return tuple(v.split())
        return v


class DanbooruPost(BasePost):
    width: int = Field(default=0, alias="image_width")
    height: int = Field(default=0, alias="image_height")
    preview_url: Optional[str] = Field(default=None, alias="preview_file_url")
    sample_url: Optional[str] = Field(default=None, alias="large_file_url")
    tags: Tuple[str, ...] = Field(default=(), alias="tag_string")
    rating: Optional[DanbooruRating] = None
    created_at: Optional[str] = None
    file_ext: Optional[str] = None
    file_size: Optional[int] = None
    fav_count: int = 0
    artist_tags: Tuple[str, ...] = Field(default=(), alias="tag_string_artist")
    character_tags: Tuple[str, ...] = Field(default=(), alias="tag_string_character")
    copyright_tags: Tuple[str, ...] = Field(default=(), alias="tag_string_copyright")

    @field_validator("rating", mode="before")
    @classmethod
    def _rating_code(cls, v: Any) -> Any:
        if isinstance(v, str):
            return DanbooruRating(v)
        return v

    @field_validator("artist_tags", "character_tags", "copyright_tags", mode="before")
    @classmethod
    def _split_category_tags(cls, v: Any) -> Any:
        if isinstance(v, str):
            return tuple(v.split())
        return v


class GelbooruPost(BasePost):
    rating: Optional[GelbooruRating] = None
    created_at: Optional[str] = None
    image: Optional[str] = None


class SafebooruPost(BasePost):
    md5: Optional[str] = Field(default=None, alias="hash")
    rating: Optional[SafebooruRating] = None
    image: Optional[str] = None
    directory: Optional[int] = None
    change: Optional[int] = None


class Rule34Post(BasePost):
    md5: Optional[str] = Field(default=None, alias="hash")
    rating: Optional[Rule34Rating] = None
    image: Optional[str] = None
    owner: Optional[str] = None
    parent_id: int = 0
    comment_count: int = 0
    change: Optional[int] = None


# --- Autocomplete ---


class TagCategory(Enum):
    GENERAL = "general"
    ARTIST = "artist"
    COPYRIGHT = "copyright"
    CHARACTER = "character"
    META = "meta"

    @classmethod
    def from_raw(cls, value: Any) -> Optional["TagCategory"]:
        """Parse a category from a numeric code or one of the sites' names for it."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return _CATEGORY_CODES.get(value)
        text = str(value).strip().lower()
        if text.isdigit():
            return _CATEGORY_CODES.get(int(text))
        return _CATEGORY_NAMES.get(text)


_CATEGORY_CODES = {
    0: TagCategory.GENERAL,
    1: TagCategory.ARTIST,
    3: TagCategory.COPYRIGHT,
    4: TagCategory.CHARACTER,
    5: TagCategory.META,
}

_CATEGORY_NAMES = {
    "general": TagCategory.GENERAL,
    "tag": TagCategory.GENERAL,
    "artist": TagCategory.ARTIST,
    "copyright": TagCategory.COPYRIGHT,
    "series": TagCategory.COPYRIGHT,
    "character": TagCategory.CHARACTER,
    "meta": TagCategory.META,
    "metadata": TagCategory.META,
}


class TagSuggestion(BaseModel):
    """A tag returned by a site's autocomplete endpoint."""

    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    post_count: Optional[int] = None
    category: Optional[TagCategory] = None

    @field_validator("category", mode="before")
    @classmethod
    def _parse_category(cls, v: Any) -> Any:
        if isinstance(v, TagCategory):
            return v
        return TagCategory.from_raw(v)
