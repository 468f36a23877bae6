"""Client configuration via environment variables.

Uses pydantic-settings to load config from env vars with CASESYNC_ prefix.
No config files — just env vars (12-factor app style).

Learn: the reconnect knobs here are the only inputs the backoff scheduler
needs. Tests build their own Settings(...) instead of touching the singleton.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All client configuration. Set via CASESYNC_* env vars."""

    # Event stream endpoint (empty = real-time updates disabled)
    ws_url: str = ""
    socketio_path: str = "socket.io"
    transports: list[str] = ["websocket"]
    token_query_param: str = "token"

    # Connection lifecycle
    connect_timeout_seconds: float = 10.0
    initial_reconnect_delay: float = 1.0  # seconds
    max_reconnect_delay: float = 30.0  # seconds
    max_reconnect_attempts: int = 5

    # Runtime
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "CASESYNC_"}

    @model_validator(mode="after")
    def validate_reconnect_settings(self):
        """Reject backoff settings that would make the retry schedule meaningless."""
        if self.initial_reconnect_delay <= 0:
            raise ValueError("CASESYNC_INITIAL_RECONNECT_DELAY must be positive")
        if self.max_reconnect_delay < self.initial_reconnect_delay:
            raise ValueError(
                "CASESYNC_MAX_RECONNECT_DELAY must be >= CASESYNC_INITIAL_RECONNECT_DELAY"
            )
        if self.max_reconnect_attempts < 1:
            raise ValueError("CASESYNC_MAX_RECONNECT_ATTEMPTS must be at least 1")
        if self.connect_timeout_seconds <= 0:
            raise ValueError("CASESYNC_CONNECT_TIMEOUT_SECONDS must be positive")
        return self


# Singleton — import this everywhere
settings = Settings()
