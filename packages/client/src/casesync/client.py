"""Client factory — wires store, router, scheduler, manager and session.

Learn: App factory pattern — create_client() returns a fully wired
RealtimeClient. Build one per login session and stop() it on logout;
nothing in casesync is a module-level singleton except `settings`, so
tests can build as many isolated clients as they like.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog

from casesync import __version__
from casesync.cache.base import Notifier, QueryCache
from casesync.config import Settings
from casesync.config import settings as default_settings
from casesync.realtime.backoff import BackoffPolicy, BackoffScheduler, CancellableTimer
from casesync.realtime.manager import ConnectionManager
from casesync.realtime.router import EventRouter
from casesync.realtime.session import AuthTokenSource, SessionBinding
from casesync.realtime.state import ConnectionStateStore
from casesync.realtime.transport import SocketIOTransport, Transport

logger = structlog.get_logger()


@dataclass
class RealtimeClient:
    settings: Settings
    store: ConnectionStateStore
    router: EventRouter
    manager: ConnectionManager
    binding: SessionBinding

    def start(self) -> None:
        """Start following the auth token (connects if one is present)."""
        logger.info(
            "casesync.starting",
            version=__version__,
            environment=self.settings.environment,
            url=self.settings.ws_url or None,
        )
        if not self.settings.ws_url:
            logger.warning(
                "casesync.realtime_disabled",
                hint="set CASESYNC_WS_URL to enable real-time updates",
            )
        self.binding.start()

    async def stop(self) -> None:
        """Teardown: stop the binding, cancel retries, close the transport."""
        logger.info("casesync.shutdown")
        self.binding.stop()
        await self.manager.shutdown()


def socketio_transport_factory(settings: Settings) -> Callable[[], Transport]:
    def factory() -> Transport:
        return SocketIOTransport(
            connect_timeout=settings.connect_timeout_seconds,
            transports=settings.transports,
            socketio_path=settings.socketio_path,
            token_param=settings.token_query_param,
        )

    return factory


def create_client(
    *,
    cache: QueryCache,
    notifier: Notifier,
    tokens: AuthTokenSource,
    settings: Optional[Settings] = None,
    transport_factory: Optional[Callable[[], Transport]] = None,
    timer=None,
    clock: Optional[Callable[[], datetime]] = None,
) -> RealtimeClient:
    """Build and return a wired RealtimeClient."""
    settings = settings or default_settings
    store = ConnectionStateStore()
    router = EventRouter(store, cache, notifier, clock=clock)
    scheduler = BackoffScheduler(
        BackoffPolicy.from_settings(settings),
        timer if timer is not None else CancellableTimer(),
    )
    manager = ConnectionManager(
        url=settings.ws_url,
        store=store,
        router=router,
        scheduler=scheduler,
        transport_factory=transport_factory or socketio_transport_factory(settings),
        token_provider=tokens.get,
    )
    binding = SessionBinding(manager, tokens)
    return RealtimeClient(
        settings=settings,
        store=store,
        router=router,
        manager=manager,
        binding=binding,
    )
