"""Query cache keys and the cache/notifier interfaces the router writes to."""
