"""Connection state store — the status every UI consumer reads.

Learn: This is a plain state container. It holds four values
(status, error, reconnect_attempts, last_event_at) and notifies
subscribers when the snapshot changes. It never decides anything:
the connection manager writes it, indicators and tests read it.

One store per session — create it at startup, drop it on logout.
There is no module-level instance so tests get isolated stores.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

import structlog

logger = structlog.get_logger()


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class ConnectionState:
    """Immutable snapshot handed to subscribers."""

    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    error: Optional[str] = None
    reconnect_attempts: int = 0
    last_event_at: Optional[datetime] = None


StateListener = Callable[[ConnectionState], None]


class ConnectionStateStore:
    """Observable holder for the current ConnectionState."""

    def __init__(self) -> None:
        self._state = ConnectionState()
        self._listeners: list[StateListener] = []

    # ─── Reads ────────────────────────────────────────────

    def snapshot(self) -> ConnectionState:
        return self._state

    def get_status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    @property
    def reconnect_attempts(self) -> int:
        return self._state.reconnect_attempts

    @property
    def last_event_at(self) -> Optional[datetime]:
        return self._state.last_event_at

    # ─── Writes ───────────────────────────────────────────

    def set_status(self, status: ConnectionStatus) -> None:
        self._update(status=ConnectionStatus(status))

    def set_error(self, error: Optional[str]) -> None:
        self._update(error=error)

    def increment_reconnect_attempts(self) -> int:
        """Bump the consecutive-failure counter and return the new value."""
        attempts = self._state.reconnect_attempts + 1
        self._update(reconnect_attempts=attempts)
        return attempts

    def reset_reconnect_attempts(self) -> None:
        self._update(reconnect_attempts=0)

    def set_last_event_at(self, when: datetime) -> None:
        self._update(last_event_at=when)

    # ─── Subscriptions ────────────────────────────────────

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener. Returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        # Copy: a listener may unsubscribe itself while we iterate
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("realtime.state_listener_failed")
