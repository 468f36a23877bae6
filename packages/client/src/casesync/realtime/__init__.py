"""Real-time infrastructure — socket.io event stream → query cache.

Learn: Events flow in one direction:
1. Backend emits a socket.io event (e.g. "case-updated")
2. The transport hands it to the connection manager
3. The event router invalidates the matching cache keys and raises toasts

The manager owns reconnection (exponential backoff, capped attempts),
the session binding follows the auth token, and the state store exposes
status/error/attempts/last-event to whatever renders the indicator.
"""
