"""Server event name constants.

Learn: Centralizing event names as constants prevents typos and
makes it easy to discover every event the client reacts to.
Names match what the backend emits over socket.io (kebab-case).
"""

# ─── Connection ──────────────────────────────────────────

CONNECTION_CONFIRMED = "connection-confirmed"

# ─── Entity updates ──────────────────────────────────────

REGULATION_UPDATED = "regulation-updated"
CASE_UPDATED = "case-updated"
CLIENT_UPDATED = "client-updated"
DOCUMENT_UPDATED = "document-updated"

# ─── AI suggestions (regulation links on a case) ─────────

AI_SUGGESTION_GENERATED = "ai-suggestion-generated"
AI_SUGGESTION_VERIFIED = "ai-suggestion-verified"
CASE_LINKS_REFRESHED = "case-links-refreshed"  # legacy name for a refreshed link set

# ─── Notifications ───────────────────────────────────────

NOTIFICATION = "notification"

# ─── Documents on a case ─────────────────────────────────

DOCUMENT_UPLOADED = "document-uploaded"
DOCUMENT_DELETED = "document-deleted"
DOCUMENT_SUMMARY_READY = "document-summary-ready"
