"""Query cache keys — the topics the dashboard caches data under.

Learn: Keys are tuples, coarse to specific: ("cases",) is the case list,
("case", 42) is one case, ("ai-links", 42) is the suggestion set for
case 42. Invalidating a key also invalidates every longer key that
starts with it, so ("ai-links",) refreshes the suggestions of all cases.

These must stay in sync with the keys the query layer fetches under.
"""

from typing import Hashable

CacheKey = tuple[Hashable, ...]

# ─── Collections ─────────────────────────────────────────

CASES: CacheKey = ("cases",)
CLIENTS: CacheKey = ("clients",)
REGULATIONS: CacheKey = ("regulations",)
DOCUMENTS: CacheKey = ("documents",)
AI_LINKS: CacheKey = ("ai-links",)
ALERTS: CacheKey = ("alerts",)


# ─── Single entities ─────────────────────────────────────


def case(case_id: int) -> CacheKey:
    return ("case", case_id)


def client(client_id: int) -> CacheKey:
    return ("client", client_id)


def regulation(regulation_id: int) -> CacheKey:
    return ("regulation", regulation_id)


def document(document_id: int) -> CacheKey:
    return ("document", document_id)


# ─── Scoped to a case / document ─────────────────────────


def case_ai_links(case_id: int) -> CacheKey:
    return (*AI_LINKS, case_id)


def case_documents(case_id: int) -> CacheKey:
    return (*DOCUMENTS, case_id)


def document_summary(document_id: int) -> CacheKey:
    return ("document-summary", document_id)


def matches(prefix: CacheKey, key: CacheKey) -> bool:
    """True when `key` falls under `prefix` (query-cache prefix semantics)."""
    return key[: len(prefix)] == prefix
