from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from .config import Settings

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    stored_at: float


class TTLCache(Generic[V]):
    """Key/value map whose entries expire lazily on read."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> V | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheLayer:
    def __init__(
        self,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        settings = settings or Settings()
        self.lists: TTLCache[Any] = TTLCache(settings.list_cache_ttl_sec, clock)
        self.articles: TTLCache[dict[str, Any]] = TTLCache(settings.article_cache_ttl_sec, clock)
        self.details: TTLCache[Any] = TTLCache(settings.detail_cache_ttl_sec, clock)
        self.fallback_images: TTLCache[str] = TTLCache(
            settings.fallback_image_cache_ttl_sec, clock
        )

    def clear(self) -> None:
        for cache in (self.lists, self.articles, self.details, self.fallback_images):
            cache.clear()
