#!/usr/bin/env python3
"""
casesync Quickstart — embed the real-time client in an application.

Builds a client around an in-memory query cache, "logs in" by setting
the auth token, prints the status badge and every invalidation for a
minute, then "logs out".

Run with: python examples/quickstart.py wss://api.example.com <token>

Requires: pip install -e .
"""

import asyncio
import sys

from casesync.cache.base import Notification
from casesync.cache.memory import MemoryQueryCache
from casesync.client import create_client
from casesync.config import Settings
from casesync.realtime.indicator import describe
from casesync.realtime.session import AuthTokenSource


class PrintNotifier:
    def notify(self, notification: Notification) -> None:
        print(f"   toast: {notification.title} — {notification.message}")


async def main(url: str, token: str):
    cache = MemoryQueryCache()
    cache.on_invalidate(lambda key: print(f"   refetch {key}"))

    tokens = AuthTokenSource()
    client = create_client(
        cache=cache,
        notifier=PrintNotifier(),
        tokens=tokens,
        settings=Settings(ws_url=url),
    )

    def show(state):
        badge, tooltip = describe(state)
        print(f"[{badge.color:>5}] {badge.label}  ({tooltip})")

    client.store.subscribe(show)
    client.start()

    # ── Login ─────────────────────────────────────────────────────
    print("1. Logging in...")
    tokens.set(token)
    await asyncio.sleep(60)

    # ── Logout ────────────────────────────────────────────────────
    print("\n2. Logging out...")
    tokens.clear()
    await client.stop()
    print(f"\nDone. {len(cache.invalidations)} invalidation(s) received.")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python examples/quickstart.py <ws-url> <token>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2]))
