"""Status indicator — what the always-visible connection badge shows."""

from dataclasses import dataclass

from casesync.realtime.state import ConnectionState, ConnectionStatus


@dataclass(frozen=True)
class StatusBadge:
    icon: str
    color: str
    label: str


BADGES: dict[ConnectionStatus, StatusBadge] = {
    ConnectionStatus.CONNECTED: StatusBadge(icon="wifi", color="green", label="Connected"),
    ConnectionStatus.CONNECTING: StatusBadge(icon="spinner", color="amber", label="Connecting..."),
    ConnectionStatus.DISCONNECTED: StatusBadge(icon="wifi-off", color="gray", label="Offline"),
    ConnectionStatus.ERROR: StatusBadge(icon="wifi-off", color="red", label="Connection error"),
}


def describe(state: ConnectionState) -> tuple[StatusBadge, str]:
    """Badge for the current status plus its tooltip (last error, else the label)."""
    badge = BADGES[state.status]
    return badge, state.error or badge.label
