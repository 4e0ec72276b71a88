"""LRU cache of processed previews keyed by (source, settings_hash)."""

from __future__ import annotations

from collections import OrderedDict


class ResultCache:
    """Simple LRU cache for dithered previews.

    Keys are (source, settings_hash) tuples, where source identifies the
    loaded image (usually its path).
    """

    def __init__(self, max_size: int = 16) -> None:
        self._max_size = max_size
        self._cache: OrderedDict[tuple[str, str], object] = OrderedDict()

    def get(self, source: str, settings_hash: str) -> object | None:
        """Get a cached result, or None if not present."""
        key = (source, settings_hash)
        if key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]
        return None

    def put(self, source: str, settings_hash: str, value: object) -> None:
        """Cache a processed result."""
        key = (source, settings_hash)
        if key in self._cache:
            self._cache.move_to_end(key)
        else:
            if len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
        self._cache[key] = value

    def clear(self) -> None:
        """Clear the entire cache."""
        self._cache.clear()

    @property
    def size(self) -> int:
        return len(self._cache)
