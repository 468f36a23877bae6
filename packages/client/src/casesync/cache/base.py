"""Interfaces of the collaborators the real-time client writes to.

Learn: The query cache and the toast layer live outside this package.
The router only ever calls these two protocols, so any cache (an
in-process dict, a UI framework's query client) can be plugged in.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from casesync.cache.keys import CacheKey


@dataclass(frozen=True)
class Notification:
    """A user-visible toast."""

    title: str
    message: str = ""


class QueryCache(Protocol):
    def invalidate(self, key: CacheKey) -> None:
        """Mark everything cached under `key` as stale."""

    def set_cached_value(self, key: CacheKey, value: Any) -> None:
        """Seed the cache directly, without a refetch."""


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None:
        """Show a toast / snackbar."""
