"""
In-memory response cache.

Values are stored as serialized JSON snapshots rather than live objects:
``insert`` serializes the whole value before touching the store, and ``get``
validates the snapshot back into whatever shape the caller asks for. A
snapshot that cannot be read back into that shape is reported as a miss.

None of the methods await, so under asyncio every read and write runs to
completion without interleaving. Writes to one key are linearized and never
observed half-done, and operations on different keys cannot block each other.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

import structlog
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: bytes
    inserted_at: float

    def age(self, now: float) -> float:
        return now - self.inserted_at


@lru_cache(maxsize=64)
def _adapter_for(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


class ResponseCache:
    """
    Keyed snapshot store with optional TTL and LRU bound.

    Args:
        ttl: Seconds after insertion an entry stays readable. ``None`` keeps
            entries until evicted or cleared. Expired entries are dropped when
            read; there is no background sweep.
        max_entries: LRU capacity. ``None`` means unbounded.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl is not None and ttl <= 0:
            raise ValueError(f"ttl must be > 0, got {ttl}")
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._stats: Dict[str, int] = {"hits": 0, "misses": 0, "stores": 0, "expired": 0, "evicted": 0}

    def insert(self, key: str, value: Any) -> None:
        """Store a snapshot of ``value`` under ``key``, replacing any prior entry.

        A value that cannot be serialized is not stored and any existing entry
        is left untouched.
        """
        try:
            payload = to_json(value)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            logger.debug("Value not cacheable", key=key, error=str(e))
            return

        self._entries[key] = CacheEntry(key=key, payload=payload, inserted_at=self._clock())
        self._entries.move_to_end(key)
        self._stats["stores"] += 1

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._stats["evicted"] += 1
                logger.debug("Cache entry evicted", key=evicted)

    def get(self, key: str, shape: Any) -> Optional[Any]:
        """Return the entry under ``key`` validated as ``shape``, or ``None``."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats["misses"] += 1
            return None

        if self.ttl is not None and entry.age(self._clock()) >= self.ttl:
            del self._entries[key]
            self._stats["expired"] += 1
            self._stats["misses"] += 1
            logger.debug("Cache entry expired", key=key)
            return None

        try:
            value = _adapter_for(shape).validate_json(entry.payload)
        except ValidationError as e:
            self._stats["misses"] += 1
            logger.debug("Cache entry does not match requested shape", key=key, errors=e.error_count())
            return None

        self._entries.move_to_end(key)
        self._stats["hits"] += 1
        return value

    def contains(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        return self.ttl is None or entry.age(self._clock()) < self.ttl

    def remove(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        lookups = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "entries": len(self._entries),
            "hit_rate": self._stats["hits"] / lookups if lookups else 0.0,
        }
