"""Client factory tests — wiring and session lifecycle."""

import asyncio

import pytest

from casesync.config import Settings
from casesync.client import create_client, socketio_transport_factory
from casesync.events import types
from casesync.realtime.session import AuthTokenSource
from casesync.realtime.state import ConnectionStatus
from casesync.realtime.transport import SocketIOTransport

from conftest import WS_URL, FakeTransport


def _client(cache, notifier, tokens, timer=None, **overrides):
    transports = []

    def factory():
        transport = FakeTransport()
        transports.append(transport)
        return transport

    client = create_client(
        cache=cache,
        notifier=notifier,
        tokens=tokens,
        settings=Settings(ws_url=WS_URL, **overrides),
        transport_factory=factory,
        timer=timer,
    )
    return client, transports


def test_clients_are_isolated(cache, notifier):
    a, _ = _client(cache, notifier, AuthTokenSource("t1"))
    b, _ = _client(cache, notifier, AuthTokenSource("t2"))
    assert a.store is not b.store
    assert a.manager is not b.manager


def test_policy_follows_settings(cache, notifier, tokens, timer):
    client, _ = _client(cache, notifier, tokens, timer=timer, max_reconnect_attempts=2)
    assert client.manager.scheduler.policy.max_attempts == 2


def test_start_connects_and_routes(cache, notifier, tokens, timer):
    client, transports = _client(cache, notifier, tokens, timer=timer)
    client.start()
    transports[0].opened()
    transports[0].message(types.CASE_UPDATED, {"caseId": 42})

    assert client.store.status == ConnectionStatus.CONNECTED
    assert cache.invalidations == [("case", 42)]


def test_start_without_url_stays_offline(cache, notifier, tokens):
    client = create_client(
        cache=cache,
        notifier=notifier,
        tokens=tokens,
        settings=Settings(ws_url=""),
        transport_factory=FakeTransport,
    )
    client.start()
    assert client.store.status == ConnectionStatus.DISCONNECTED
    assert not client.manager.has_transport


@pytest.mark.asyncio
async def test_stop_tears_everything_down(cache, notifier, tokens, timer):
    client, transports = _client(cache, notifier, tokens, timer=timer)
    client.start()
    transports[0].fail()

    await client.stop()

    assert timer.pending == 0
    assert client.store.status == ConnectionStatus.DISCONNECTED
    assert not client.binding.active


@pytest.mark.asyncio
async def test_real_timer_drives_retry(cache, notifier, tokens):
    client, transports = _client(
        cache, notifier, tokens,
        initial_reconnect_delay=0.01, max_reconnect_delay=0.02,
    )
    client.start()
    transports[0].fail()
    await asyncio.sleep(0.05)

    assert len(transports) == 2
    assert client.store.status == ConnectionStatus.CONNECTING
    await client.stop()


def test_socketio_factory_uses_settings():
    factory = socketio_transport_factory(
        Settings(ws_url=WS_URL, connect_timeout_seconds=3, socketio_path="rt")
    )
    transport = factory()
    assert isinstance(transport, SocketIOTransport)
    assert transport.connect_timeout == 3
    assert transport.socketio_path == "rt"
