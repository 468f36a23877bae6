"""Transport — the live socket.io connection and its lifecycle events.

Learn: The manager never sees socket.io callbacks directly. A transport
reports everything that happens to it as one of four TransportEvent
values through a single `on_event` callback:

  TransportOpened       — handshake finished, events may flow
  TransportOpenFailed   — the connect attempt did not succeed
  TransportClosed       — an open connection went away (abnormal or not)
  TransportMessage      — a server event, in arrival order

The socket.io client's own reconnection is switched off: the manager
owns every retry, so there is exactly one state machine.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import socketio
import structlog

logger = structlog.get_logger()

# Disconnect reasons reported by python-socketio that mean "someone hung up
# on purpose". Anything else (transport error/close, ping timeout) is abnormal.
INTENTIONAL_DISCONNECT_REASONS = frozenset({"client disconnect", "server disconnect"})


# ─── Transport events ────────────────────────────────────


@dataclass(frozen=True)
class TransportOpened:
    pass


@dataclass(frozen=True)
class TransportOpenFailed:
    error: str


@dataclass(frozen=True)
class TransportClosed:
    reason: str
    abnormal: bool


@dataclass(frozen=True)
class TransportMessage:
    name: str
    payload: Any = None


TransportEvent = Union[TransportOpened, TransportOpenFailed, TransportClosed, TransportMessage]
EventSink = Callable[[TransportEvent], None]


class Transport(ABC):
    """A single connection attempt. Create a fresh one for every attempt."""

    @abstractmethod
    def open(self, url: str, token: str, on_event: EventSink) -> None:
        """Start connecting in the background. Must not block."""

    @abstractmethod
    def close(self) -> None:
        """Stop the connection. Emits no further events."""

    async def wait_closed(self) -> None:
        """Wait until close() has fully released the connection."""


def build_connect_url(base_url: str, token: str, param: str = "token") -> str:
    """Return `base_url` with the auth token merged into its query string."""
    parts = urlsplit(base_url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k != param]
    query.append((param, token))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def redact(token: Optional[str]) -> str:
    if not token:
        return ""
    return f"{token[:4]}…"


class SocketIOTransport(Transport):
    """Transport backed by python-socketio's AsyncClient."""

    def __init__(
        self,
        *,
        connect_timeout: float = 10.0,
        transports: Optional[list[str]] = None,
        socketio_path: str = "socket.io",
        token_param: str = "token",
    ):
        self.connect_timeout = connect_timeout
        self.transports = transports or ["websocket"]
        self.socketio_path = socketio_path
        self.token_param = token_param

        self._sio = socketio.AsyncClient(reconnection=False)
        self._sio.on("connect", handler=self._on_connect)
        self._sio.on("disconnect", handler=self._on_disconnect)
        self._sio.on("*", handler=self._on_message)

        self._on_event: Optional[EventSink] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Task] = None
        self._opened = False
        self._closing = False

    # ─── Lifecycle ────────────────────────────────────────

    def open(self, url: str, token: str, on_event: EventSink) -> None:
        self._on_event = on_event
        self._connect_task = asyncio.get_running_loop().create_task(
            self._connect(build_connect_url(url, token, self.token_param))
        )

    async def _connect(self, url: str) -> None:
        logger.debug("realtime.transport_connecting", timeout=self.connect_timeout)
        try:
            await asyncio.wait_for(
                self._sio.connect(
                    url,
                    transports=self.transports,
                    socketio_path=self.socketio_path,
                    wait=True,
                    wait_timeout=self.connect_timeout,
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            await self._abort()
            self._emit(TransportOpenFailed(
                f"Connection timed out after {self.connect_timeout:g}s"
            ))
            return
        except Exception as e:
            # socketio.exceptions.ConnectionError and whatever the engine.io
            # layer raises underneath: all of it is an open failure
            await self._abort()
            self._emit(TransportOpenFailed(str(e) or type(e).__name__))
            return

        # The connect handler normally reports the open first
        self._mark_opened()

    def _mark_opened(self) -> None:
        if self._opened:
            return
        self._opened = True
        self._emit(TransportOpened())

    async def _abort(self) -> None:
        try:
            await self._sio.disconnect()
        except Exception:
            logger.debug("realtime.transport_abort_failed", exc_info=True)

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        self._on_event = None
        task = self._connect_task
        # close() may be called from inside the connect task's own callback
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._close_task = asyncio.get_running_loop().create_task(self._abort())

    async def wait_closed(self) -> None:
        for task in (self._connect_task, self._close_task):
            if task is None:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ─── socket.io handlers ───────────────────────────────

    async def _on_connect(self) -> None:
        if not self._closing:
            self._mark_opened()

    async def _on_disconnect(self, reason: Optional[str] = None) -> None:
        if self._closing or not self._opened:
            return
        reason = str(reason) if reason else "transport close"
        self._opened = False
        self._emit(TransportClosed(
            reason=reason,
            abnormal=reason not in INTENTIONAL_DISCONNECT_REASONS,
        ))

    async def _on_message(self, event: str, *args: Any) -> None:
        self._emit(TransportMessage(name=event, payload=args[0] if args else None))

    def _emit(self, event: TransportEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)
