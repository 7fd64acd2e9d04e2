"""Bundled site adapters."""

from typing import Dict, Type

from .base import BaseAdapter, check_status, parse_post_count_from_label
from .danbooru import DANBOORU, DanbooruAdapter
from .gelbooru import GELBOORU, GelbooruAdapter
from .rule34 import RULE34, Rule34Adapter
from .safebooru import SAFEBOORU, SafebooruAdapter

ADAPTERS: Dict[str, Type[BaseAdapter]] = {
    "danbooru": DanbooruAdapter,
    "gelbooru": GelbooruAdapter,
    "safebooru": SafebooruAdapter,
    "rule34": Rule34Adapter,
}


def adapter_class(site: str) -> Type[BaseAdapter]:
    try:
        return ADAPTERS[site.lower()]
    except KeyError:
        raise ValueError(f"Unknown site {site!r}; expected one of {', '.join(sorted(ADAPTERS))}") from None


__all__ = [
    "ADAPTERS",
    "BaseAdapter",
    "DANBOORU",
    "DanbooruAdapter",
    "GELBOORU",
    "GelbooruAdapter",
    "RULE34",
    "Rule34Adapter",
    "SAFEBOORU",
    "SafebooruAdapter",
    "adapter_class",
    "check_status",
    "parse_post_count_from_label",
]
