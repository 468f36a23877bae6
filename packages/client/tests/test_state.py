"""Connection state store tests."""

from datetime import datetime, timezone

from casesync.realtime.state import ConnectionState, ConnectionStateStore, ConnectionStatus


def test_initial_state_is_disconnected(store):
    assert store.snapshot() == ConnectionState()
    assert store.get_status() == ConnectionStatus.DISCONNECTED
    assert store.error is None
    assert store.reconnect_attempts == 0
    assert store.last_event_at is None


def test_status_accepts_plain_strings(store):
    store.set_status("connecting")
    assert store.status is ConnectionStatus.CONNECTING


def test_increment_returns_new_count(store):
    assert store.increment_reconnect_attempts() == 1
    assert store.increment_reconnect_attempts() == 2
    store.reset_reconnect_attempts()
    assert store.reconnect_attempts == 0


def test_subscribers_receive_new_snapshot(store):
    seen = []
    store.subscribe(seen.append)

    store.set_status(ConnectionStatus.CONNECTING)
    store.set_error("boom")

    assert [s.status for s in seen] == [ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTING]
    assert seen[-1].error == "boom"


def test_no_notification_when_nothing_changes(store):
    seen = []
    store.subscribe(seen.append)
    store.set_status(ConnectionStatus.DISCONNECTED)
    store.set_error(None)
    store.reset_reconnect_attempts()
    assert seen == []


def test_unsubscribe_stops_notifications(store):
    seen = []
    unsubscribe = store.subscribe(seen.append)
    unsubscribe()
    unsubscribe()  # idempotent
    store.set_status(ConnectionStatus.CONNECTED)
    assert seen == []


def test_failing_listener_does_not_block_others(store):
    seen = []

    def broken(_):
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    store.subscribe(seen.append)
    store.set_status(ConnectionStatus.CONNECTED)

    assert len(seen) == 1
    assert store.status == ConnectionStatus.CONNECTED


def test_last_event_at_is_stored_as_given(store):
    when = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    store.set_last_event_at(when)
    assert store.last_event_at == when
    # Earlier timestamps are accepted as-is
    earlier = datetime(2024, 4, 1, tzinfo=timezone.utc)
    store.set_last_event_at(earlier)
    assert store.last_event_at == earlier


def test_snapshots_are_isolated_per_store():
    a, b = ConnectionStateStore(), ConnectionStateStore()
    a.set_status(ConnectionStatus.CONNECTED)
    assert b.status == ConnectionStatus.DISCONNECTED
