"""Timed cache of rendered chapters."""

from __future__ import annotations

import fnmatch
import logging
import time
from typing import Callable, Dict, Tuple

from chapin.chapter.chapter import Chapter

logger = logging.getLogger(__name__)

# Cached value with the time it was stored.
CacheEntry = Tuple[float, str]
CacheStore = Dict[str, CacheEntry]

# Default time-to-live in seconds.
DEFAULT_TTL_SECONDS = 15 * 60


def chapter_cache_key(chapter: Chapter, suffix: str = "") -> str:
    """Return the cache key of ``chapter``, optionally specialised."""

    key = f"chapters/{chapter.chapter_id}"
    return f"{key}/{suffix}" if suffix else key


class RenderCache:
    """In-memory cache of rendered chapter HTML with expiry.

    Keys are path-like strings such as ``chapters/<chapter_id>`` so that
    everything belonging to one chapter can be evicted with a single glob.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: CacheStore = {}

    def get(self, key: str) -> str | None:
        """Return the value cached under ``key`` unless it has expired."""

        cached = self._entries.get(key)
        if cached is None:
            return None
        if time.time() - cached[0] >= self.ttl_seconds:
            del self._entries[key]
            return None
        return cached[1]

    def set(self, key: str, value: str) -> None:
        self._entries[key] = (time.time(), value)

    def fetch(self, key: str, build: Callable[[], str]) -> str:
        """Return the cached value for ``key``, building it when missing."""

        value = self.get(key)
        if value is None:
            value = build()
            self.set(key, value)
        return value

    def delete_matched(self, pattern: str) -> int:
        """Remove all keys matching the glob ``pattern``.

        Returns:
            Number of removed entries.
        """

        matched = [key for key in self._entries if fnmatch.fnmatch(key, pattern)]
        for key in matched:
            del self._entries[key]
        logger.debug(f"Evicted {len(matched)} cache entries for {pattern!r}")
        return len(matched)

    def __len__(self) -> int:
        return len(self._entries)


def render_chapter(chapter: Chapter, cache: RenderCache | None = None) -> str:
    """Return the HTML of ``chapter``, served from ``cache`` when possible."""

    def build() -> str:
        return "\n".join(element.html for element in chapter.elements)

    if cache is None:
        return build()
    return cache.fetch(chapter_cache_key(chapter), build)
