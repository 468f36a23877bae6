"""Connection manager — the state machine behind the real-time channel.

Learn: The manager is the only owner of the transport. Everything else
asks it to connect() or disconnect(); transports report back through
handle_transport_event(). Transitions:

  disconnected → connecting   connect() with a token and no live transport
  connecting   → connected    TransportOpened (attempts reset, error cleared)
  connecting   → error        TransportOpenFailed (attempt counted, retry scheduled)
  connected    → disconnected TransportClosed, intentional (no retry)
  connected    → connecting   TransportClosed, abnormal (attempt counted, retry scheduled)
  any          → disconnected disconnect() (timer cancelled, transport closed, attempts reset)

Once the attempt cap is hit the manager parks in `error` with a
"please reload" message and stops retrying until a fresh connect is
requested (token change or retry_now()).

Every transport gets a generation number. Events from an older
generation are ignored, so a late callback from a closed transport
can never flip the state of the current one.
"""

import asyncio
from functools import partial
from typing import Callable, Optional

import structlog

from casesync.realtime.backoff import BackoffScheduler, TimerHandle
from casesync.realtime.router import EventRouter
from casesync.realtime.state import ConnectionStateStore, ConnectionStatus
from casesync.realtime.transport import (
    Transport,
    TransportClosed,
    TransportEvent,
    TransportMessage,
    TransportOpened,
    TransportOpenFailed,
    redact,
)

logger = structlog.get_logger()


def retry_exhausted_message(attempts: int) -> str:
    return (
        f"Unable to reach the real-time service after {attempts} attempts. "
        "Please reload the page."
    )


class ConnectionManager:
    """Owns the transport handle and drives ConnectionStateStore."""

    def __init__(
        self,
        *,
        url: str,
        store: ConnectionStateStore,
        router: EventRouter,
        scheduler: BackoffScheduler,
        transport_factory: Callable[[], Transport],
        token_provider: Callable[[], Optional[str]],
    ):
        self.url = url
        self.store = store
        self.router = router
        self.scheduler = scheduler
        self._transport_factory = transport_factory
        self._token_provider = token_provider

        self._transport: Optional[Transport] = None
        self._generation = 0
        self._retry: Optional[TimerHandle] = None
        self._closing: set[asyncio.Task] = set()

    @property
    def has_transport(self) -> bool:
        return self._transport is not None

    @property
    def retry_pending(self) -> bool:
        return self._retry is not None

    # ─── Commands ─────────────────────────────────────────

    def connect(self) -> bool:
        """Open the event stream. No-op while one is open or a retry is pending.

        Connecting from idle (including the exhausted error state) starts a
        fresh attempt budget. Returns True when a new transport was started.
        """
        if self._transport is not None or self._retry is not None:
            logger.debug("realtime.connect_skipped", status=self.store.status.value)
            return False
        self.store.reset_reconnect_attempts()
        return self._open()

    def disconnect(self) -> None:
        """Tear everything down: timer, transport, attempt counter."""
        self._cancel_retry()
        self._release_transport()
        self.store.reset_reconnect_attempts()
        self.store.set_error(None)
        if self.store.status != ConnectionStatus.DISCONNECTED:
            logger.info("realtime.disconnected", reason="requested")
        self.store.set_status(ConnectionStatus.DISCONNECTED)

    def retry_now(self) -> bool:
        """Manual retry: forget previous failures and connect immediately."""
        self._cancel_retry()
        self._release_transport()
        self.store.reset_reconnect_attempts()
        return self._open()

    async def shutdown(self) -> None:
        """disconnect(), drop any timers, then wait for closed transports to finish."""
        self.disconnect()
        self.scheduler.cancel_all()
        if self._closing:
            await asyncio.gather(*list(self._closing))

    # ─── Transport events ─────────────────────────────────

    def handle_transport_event(self, event: TransportEvent, generation: Optional[int] = None) -> None:
        """Single entry point for everything a transport reports."""
        if generation is not None and generation != self._generation:
            logger.debug("realtime.stale_transport_event", kind=type(event).__name__)
            return
        if self._transport is None:
            return

        if isinstance(event, TransportOpened):
            self._on_opened()
        elif isinstance(event, TransportOpenFailed):
            self._on_failure(event.error, surface_error=True)
        elif isinstance(event, TransportClosed):
            self._on_closed(event)
        elif isinstance(event, TransportMessage):
            # The router is only attached while connected
            if self.store.status == ConnectionStatus.CONNECTED:
                self.router.route(event.name, event.payload)

    def _on_opened(self) -> None:
        self._cancel_retry()
        attempts = self.store.reconnect_attempts
        self.store.reset_reconnect_attempts()
        self.store.set_error(None)
        self.store.set_status(ConnectionStatus.CONNECTED)
        logger.info("realtime.connected", url=self.url, previous_failures=attempts)

    def _on_closed(self, event: TransportClosed) -> None:
        if event.abnormal:
            # A drop before the handshake finished counts as a failed open
            connected = self.store.status == ConnectionStatus.CONNECTED
            self._on_failure(event.reason, surface_error=not connected)
            return
        self._release_transport()
        logger.info("realtime.disconnected", reason=event.reason)
        self.store.set_status(ConnectionStatus.DISCONNECTED)

    def _on_failure(self, error: str, *, surface_error: bool) -> None:
        """Open failure or abnormal drop: release, count, maybe schedule a retry."""
        was_connected = self.store.status == ConnectionStatus.CONNECTED
        self._release_transport()
        failures = self.store.increment_reconnect_attempts()
        logger.warning(
            "realtime.connection_lost" if was_connected else "realtime.connect_failed",
            error=error,
            failures=failures,
        )

        handle = self.scheduler.schedule_retry(self._on_retry_due, failures)
        if handle is None:
            self.store.set_error(retry_exhausted_message(failures))
            self.store.set_status(ConnectionStatus.ERROR)
            return

        self._retry = handle
        if surface_error:
            self.store.set_error(error)
            self.store.set_status(ConnectionStatus.ERROR)
        else:
            self.store.set_status(ConnectionStatus.CONNECTING)

    def _on_retry_due(self) -> None:
        self._retry = None
        if self._transport is None and not self._open():
            self.store.reset_reconnect_attempts()
            self.store.set_error(None)
            self.store.set_status(ConnectionStatus.DISCONNECTED)

    # ─── Internals ────────────────────────────────────────

    def _open(self) -> bool:
        if not self.url:
            logger.warning("realtime.disabled", reason="no websocket url configured")
            return False
        token = self._token_provider()
        if not token:
            logger.debug("realtime.connect_skipped", reason="no auth token")
            return False

        self._generation += 1
        self._transport = self._transport_factory()
        self.store.set_error(None)
        self.store.set_status(ConnectionStatus.CONNECTING)
        logger.info(
            "realtime.connecting",
            url=self.url,
            token=redact(token),
            attempt=self.store.reconnect_attempts + 1,
        )
        self._transport.open(
            self.url,
            token,
            partial(self.handle_transport_event, generation=self._generation),
        )
        return True

    def _release_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        # Bump the generation first: close() must not be able to feed events back
        self._generation += 1
        transport.close()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(transport.wait_closed())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    def _cancel_retry(self) -> None:
        if self._retry is not None:
            self.scheduler.cancel(self._retry)
            self._retry = None
