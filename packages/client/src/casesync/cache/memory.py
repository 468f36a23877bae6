"""In-process query cache.

Learn: A deliberately small QueryCache used by the CLI and by tests.
Entries carry a stale flag; invalidate() marks every entry under the
key prefix stale and tells listeners which prefix was invalidated, so
a consumer can refetch the data it cares about.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from casesync.cache.keys import CacheKey, matches

InvalidationListener = Callable[[CacheKey], None]


@dataclass
class CacheEntry:
    value: Any
    stale: bool = False


class MemoryQueryCache:
    """Dict-backed QueryCache with prefix invalidation."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._listeners: list[InvalidationListener] = []
        self.invalidations: list[CacheKey] = []

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set_cached_value(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value)

    def invalidate(self, key: CacheKey) -> None:
        for cached_key, entry in self._entries.items():
            if matches(key, cached_key):
                entry.stale = True
        self.invalidations.append(key)
        for listener in list(self._listeners):
            listener(key)

    def stale_keys(self) -> list[CacheKey]:
        return [k for k, entry in self._entries.items() if entry.stale]

    def on_invalidate(self, listener: InvalidationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
