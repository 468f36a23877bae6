"""Session binding — follows the auth token and drives the manager.

Learn: The real-time client never logs anyone in. It only watches the
token the auth layer holds:

  no token  → token      connect()
  token     → no token   disconnect()           (logout)
  token A   → token B    disconnect(); connect() (switched account)

A changed token always gets a new transport, because the server binds
the user to the socket at handshake time.
"""

from typing import Callable, Optional

import structlog

from casesync.realtime.manager import ConnectionManager

logger = structlog.get_logger()

TokenListener = Callable[[Optional[str], Optional[str]], None]


class AuthTokenSource:
    """Observable holder for the current auth token.

    The auth layer calls set()/clear(); listeners get (old, new) only
    when the value actually changes. An empty string counts as no token.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token or None
        self._listeners: list[TokenListener] = []

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: Optional[str]) -> None:
        token = token or None
        if token == self._token:
            return
        old, self._token = self._token, token
        for listener in list(self._listeners):
            listener(old, token)

    def clear(self) -> None:
        self.set(None)

    def subscribe(self, listener: TokenListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class SessionBinding:
    """Connects while a token is present, disconnects when it goes away."""

    def __init__(self, manager: ConnectionManager, tokens: AuthTokenSource):
        self.manager = manager
        self.tokens = tokens
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Begin following the token. Connects right away if one is set."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.tokens.subscribe(self._on_token_changed)
        if self.tokens.get():
            self.manager.connect()

    def stop(self) -> None:
        """Stop following the token and close the connection (teardown)."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.manager.disconnect()

    def _on_token_changed(self, old: Optional[str], new: Optional[str]) -> None:
        if new is None:
            logger.info("realtime.session_ended")
            self.manager.disconnect()
        elif old is None:
            logger.info("realtime.session_started")
            self.manager.connect()
        else:
            logger.info("realtime.session_switched")
            self.manager.disconnect()
            self.manager.connect()
