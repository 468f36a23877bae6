"""Event router — turns server events into cache and toast side effects.

Learn: Routing is split in two so it can be tested without any I/O:

1. plan(name, payload) — pure. Validates the payload and returns the
   list of effects (Invalidate / SeedCache / Notify), or None when the
   event is unknown or malformed.
2. EventRouter.route() — stamps last_event_at on the state store, then
   applies the planned effects in order against the QueryCache and
   Notifier it was given.

Specific keys win over collection keys: "case-updated" with a caseId
invalidates ("case", 42) only, so unrelated cases are not refetched.
Unknown and malformed events are dropped and logged, never raised.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, NamedTuple, Optional, Union

import structlog
from pydantic import ValidationError

from casesync.cache import keys
from casesync.cache.base import Notification, Notifier, QueryCache
from casesync.cache.keys import CacheKey
from casesync.events import types
from casesync.events.payloads import (
    CaseDocumentEvent,
    CaseRef,
    ClientRef,
    DocumentRef,
    DocumentSummaryReady,
    EventPayload,
    NotificationPayload,
    RegulationRef,
)
from casesync.realtime.state import ConnectionStateStore

logger = structlog.get_logger()


# ─── Effects ─────────────────────────────────────────────


@dataclass(frozen=True)
class Invalidate:
    key: CacheKey


@dataclass(frozen=True)
class SeedCache:
    key: CacheKey
    value: Any


@dataclass(frozen=True)
class Notify:
    notification: Notification


Effect = Union[Invalidate, SeedCache, Notify]


# ─── Planners (one per event family) ─────────────────────


def _plan_connection_confirmed(_: Optional[EventPayload]) -> list[Effect]:
    return []


def _plan_regulation_updated(ref: RegulationRef) -> list[Effect]:
    target = (
        keys.regulation(ref.regulation_id)
        if ref.regulation_id is not None
        else keys.REGULATIONS
    )
    return [
        Invalidate(target),
        # Suggestions quote regulation text, so they go stale too
        Invalidate(keys.AI_LINKS),
        Notify(Notification(
            title="Regulation updated",
            message="Linked regulations have been refreshed in the background.",
        )),
    ]


def _plan_case_updated(ref: CaseRef) -> list[Effect]:
    if ref.case_id is not None:
        return [Invalidate(keys.case(ref.case_id))]
    return [Invalidate(keys.CASES)]


def _plan_client_updated(ref: ClientRef) -> list[Effect]:
    if ref.client_id is not None:
        return [Invalidate(keys.client(ref.client_id))]
    return [Invalidate(keys.CLIENTS)]


def _plan_document_updated(ref: DocumentRef) -> list[Effect]:
    if ref.document_id is not None:
        return [Invalidate(keys.document(ref.document_id))]
    return [Invalidate(keys.DOCUMENTS)]


def _suggestions_key(ref: CaseRef) -> CacheKey:
    if ref.case_id is not None:
        return keys.case_ai_links(ref.case_id)
    return keys.AI_LINKS


def _plan_suggestion_generated(ref: CaseRef) -> list[Effect]:
    if ref.case_id is not None:
        message = f"New regulation suggestions are available for case #{ref.case_id}."
    else:
        message = "New regulation suggestions are available."
    return [
        Invalidate(_suggestions_key(ref)),
        Notify(Notification(title="New AI suggestion", message=message)),
    ]


def _plan_suggestion_verified(ref: CaseRef) -> list[Effect]:
    return [Invalidate(_suggestions_key(ref))]


def _plan_notification(payload: NotificationPayload) -> list[Effect]:
    return [
        Invalidate(keys.ALERTS),
        Notify(Notification(
            title=payload.title or "Notification",
            message=payload.message or "",
        )),
    ]


def _plan_document_uploaded(event: CaseDocumentEvent) -> list[Effect]:
    if event.file_name:
        message = f'"{event.file_name}" was added to case #{event.case_id}.'
    else:
        message = f"A new document was added to case #{event.case_id}."
    return [
        Invalidate(keys.case_documents(event.case_id)),
        Notify(Notification(title="Document uploaded", message=message)),
    ]


def _plan_document_deleted(event: CaseDocumentEvent) -> list[Effect]:
    return [Invalidate(keys.case_documents(event.case_id))]


def _plan_summary_ready(event: DocumentSummaryReady) -> list[Effect]:
    return [SeedCache(keys.document_summary(event.document_id), event.summary)]


class _Route(NamedTuple):
    schema: Optional[type[EventPayload]]
    planner: Callable[[Any], list[Effect]]
    summary: str


ROUTES: dict[str, _Route] = {
    types.CONNECTION_CONFIRMED: _Route(
        None, _plan_connection_confirmed, "diagnostic only"),
    types.REGULATION_UPDATED: _Route(
        RegulationRef, _plan_regulation_updated,
        "regulation (or all regulations) + all AI links, toast"),
    types.CASE_UPDATED: _Route(
        CaseRef, _plan_case_updated, "case (or all cases)"),
    types.CLIENT_UPDATED: _Route(
        ClientRef, _plan_client_updated, "client (or all clients)"),
    types.DOCUMENT_UPDATED: _Route(
        DocumentRef, _plan_document_updated, "document (or all documents)"),
    types.AI_SUGGESTION_GENERATED: _Route(
        CaseRef, _plan_suggestion_generated, "case AI links (or all), toast"),
    types.AI_SUGGESTION_VERIFIED: _Route(
        CaseRef, _plan_suggestion_verified, "case AI links (or all)"),
    types.CASE_LINKS_REFRESHED: _Route(
        CaseRef, _plan_suggestion_verified, "case AI links (or all)"),
    types.NOTIFICATION: _Route(
        NotificationPayload, _plan_notification, "alerts, toast"),
    types.DOCUMENT_UPLOADED: _Route(
        CaseDocumentEvent, _plan_document_uploaded, "case documents, toast"),
    types.DOCUMENT_DELETED: _Route(
        CaseDocumentEvent, _plan_document_deleted, "case documents"),
    types.DOCUMENT_SUMMARY_READY: _Route(
        DocumentSummaryReady, _plan_summary_ready, "seeds document summary"),
}


def plan(event_name: str, payload: Any = None) -> Optional[list[Effect]]:
    """Return the effects for an event, or None if it should be dropped."""
    route = ROUTES.get(event_name)
    if route is None:
        return None
    if route.schema is None:
        return route.planner(None)

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return None
    try:
        parsed = route.schema.model_validate(payload)
    except ValidationError:
        return None
    return route.planner(parsed)


class EventRouter:
    """Applies planned effects for each incoming server event, in arrival order."""

    def __init__(
        self,
        store: ConnectionStateStore,
        cache: QueryCache,
        notifier: Notifier,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.cache = cache
        self.notifier = notifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def route(self, event_name: str, payload: Any = None) -> bool:
        """Handle one server event. Returns False when it was dropped."""
        effects = plan(event_name, payload)
        if effects is None:
            if event_name in ROUTES:
                logger.warning("realtime.event_malformed", event_name=event_name, payload=payload)
            else:
                logger.debug("realtime.event_unknown", event_name=event_name)
            return False

        self.store.set_last_event_at(self._clock())
        logger.debug("realtime.event_received", event_name=event_name, effects=len(effects))

        for effect in effects:
            if isinstance(effect, Invalidate):
                self.cache.invalidate(effect.key)
            elif isinstance(effect, SeedCache):
                self.cache.set_cached_value(effect.key, effect.value)
            elif isinstance(effect, Notify):
                self.notifier.notify(effect.notification)
        return True
