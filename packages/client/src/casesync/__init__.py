"""casesync — real-time update client for the case management dashboard.

Keeps an authenticated socket.io event stream open to the backend,
recovers from network failures with exponential backoff, and turns
server-pushed events into query-cache invalidations and toasts so
consumers stay fresh without polling.
"""

__version__ = "0.1.0"
