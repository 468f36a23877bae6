"""Pydantic schemas for server event payloads.

Learn: Payloads arrive as loose JSON objects. The backend has used both
camelCase (caseId) and snake_case (case_id) over time, so every id field
accepts either spelling. Unknown fields are ignored — event shapes evolve
and the client must not break when the server adds something.

A ValidationError here means "malformed event": the router drops it.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


class EventPayload(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}


# ─── Entity updates ──────────────────────────────────────


class RegulationRef(EventPayload):
    regulation_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("regulationId", "regulation_id")
    )


class CaseRef(EventPayload):
    case_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("caseId", "case_id")
    )


class ClientRef(EventPayload):
    client_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("clientId", "client_id")
    )


class DocumentRef(EventPayload):
    document_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("documentId", "document_id")
    )


# ─── Notifications ───────────────────────────────────────


class NotificationPayload(EventPayload):
    title: Optional[str] = None
    message: Optional[str] = Field(
        None, validation_alias=AliasChoices("message", "description")
    )


# ─── Documents on a case ─────────────────────────────────


class CaseDocumentEvent(EventPayload):
    """Upload/delete events are always scoped to a case."""

    case_id: int = Field(validation_alias=AliasChoices("caseId", "case_id"))
    file_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("fileName", "file_name", "filename")
    )


class DocumentSummaryReady(EventPayload):
    document_id: int = Field(validation_alias=AliasChoices("documentId", "document_id"))
    summary: Any
