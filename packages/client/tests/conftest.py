"""Test fixtures — fake transport, manual timer, recording cache/notifier.

Learn: The manager is driven entirely by TransportEvent values and timer
callbacks, so the tests never open a socket or sleep:

1. FakeTransport records open()/close() and lets a test fire the
   lifecycle events a real socket.io connection would produce.
2. ManualTimer replaces the loop-backed timer; tests fire pending
   retries explicitly and can assert the exact backoff delays.
"""

from datetime import datetime, timedelta, timezone

import pytest

from casesync.cache.base import Notification
from casesync.config import Settings
from casesync.realtime.backoff import BackoffPolicy, BackoffScheduler
from casesync.realtime.manager import ConnectionManager
from casesync.realtime.router import EventRouter
from casesync.realtime.session import AuthTokenSource, SessionBinding
from casesync.realtime.state import ConnectionStateStore
from casesync.realtime.transport import (
    Transport,
    TransportClosed,
    TransportMessage,
    TransportOpened,
    TransportOpenFailed,
)

WS_URL = "wss://api.test/realtime"


# ─── Fakes ───────────────────────────────────────────────


class FakeTransport(Transport):
    def __init__(self):
        self.url = None
        self.token = None
        self.sink = None
        self.closed = False

    def open(self, url, token, on_event):
        self.url = url
        self.token = token
        self.sink = on_event

    def close(self):
        self.closed = True

    # Helpers that play the server / network side
    def opened(self):
        self.sink(TransportOpened())

    def fail(self, error="connection refused"):
        self.sink(TransportOpenFailed(error))

    def drop(self, reason="transport error"):
        self.sink(TransportClosed(reason=reason, abnormal=True))

    def server_close(self):
        self.sink(TransportClosed(reason="server disconnect", abnormal=False))

    def message(self, name, payload=None):
        self.sink(TransportMessage(name=name, payload=payload))


class ManualHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.active = True


class ManualTimer:
    """Deterministic stand-in for CancellableTimer."""

    def __init__(self):
        self.handles: list[ManualHandle] = []

    @property
    def delays(self) -> list[float]:
        return [h.delay for h in self.handles]

    @property
    def pending(self) -> int:
        return sum(1 for h in self.handles if h.active)

    def start(self, delay, callback):
        handle = ManualHandle(delay, callback)
        self.handles.append(handle)
        return handle

    def cancel(self, handle):
        if handle is not None:
            handle.active = False

    def cancel_all(self):
        for handle in self.handles:
            handle.active = False

    def fire_next(self):
        for handle in self.handles:
            if handle.active:
                handle.active = False
                handle.callback()
                return handle
        raise AssertionError("no pending timer to fire")


class RecordingCache:
    def __init__(self):
        self.invalidations = []
        self.seeded = {}

    def invalidate(self, key):
        self.invalidations.append(key)

    def set_cached_value(self, key, value):
        self.seeded[key] = value


class RecordingNotifier:
    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(self, notification):
        self.notifications.append(notification)


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


# ─── Fixtures ────────────────────────────────────────────


@pytest.fixture()
def store():
    return ConnectionStateStore()


@pytest.fixture()
def cache():
    return RecordingCache()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def router(store, cache, notifier, clock):
    return EventRouter(store, cache, notifier, clock=clock)


@pytest.fixture()
def timer():
    return ManualTimer()


@pytest.fixture()
def transports():
    """Every FakeTransport the manager creates, in creation order."""
    return []


@pytest.fixture()
def tokens():
    return AuthTokenSource("token-alice")


@pytest.fixture()
def test_settings():
    return Settings(ws_url=WS_URL)


@pytest.fixture()
def manager(store, router, timer, transports, tokens):
    def factory():
        transport = FakeTransport()
        transports.append(transport)
        return transport

    return ConnectionManager(
        url=WS_URL,
        store=store,
        router=router,
        scheduler=BackoffScheduler(BackoffPolicy(), timer),
        transport_factory=factory,
        token_provider=tokens.get,
    )


@pytest.fixture()
def binding(manager, tokens):
    return SessionBinding(manager, tokens)
