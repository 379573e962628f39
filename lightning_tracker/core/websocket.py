"""WebSocket connection registry.

The registry lives in process memory: it is lost on restart and is not
shared between server instances.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from lightning_tracker.core.datetime_utils import utc_now

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class ConnectionState:
    """Per-channel state kept while the connection is open."""

    socket_id: str
    websocket: "WebSocket"
    session_id: str | None = None
    joined_at: datetime = field(default_factory=utc_now)
    is_tracking: bool = False
    last_location: dict[str, Any] | None = None


class ConnectionRegistry:
    """Map of open channels keyed by socket ID."""

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionState] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, socket_id: object) -> bool:
        return socket_id in self._connections

    def add(self, state: ConnectionState) -> None:
        self._connections[state.socket_id] = state

    def remove(self, socket_id: str) -> ConnectionState | None:
        return self._connections.pop(socket_id, None)

    def get(self, socket_id: str) -> ConnectionState | None:
        return self._connections.get(socket_id)

    @property
    def tracking_count(self) -> int:
        return sum(1 for state in self._connections.values() if state.is_tracking)

    async def send(self, socket_id: str, event_type: str, data: dict[str, Any]) -> bool:
        """Send one event to a single channel."""
        state = self._connections.get(socket_id)
        if state is None:
            return False

        try:
            await state.websocket.send_json({"type": event_type, "data": data})
        except Exception as e:
            logger.warning(
                "WebSocket send failed, removing client",
                extra={"event_type": event_type, "error": str(e)},
            )
            self._connections.pop(socket_id, None)
            return False
        return True

    async def broadcast(
        self,
        event_type: str,
        data: dict[str, Any],
        exclude: str | None = None,
    ) -> int:
        """Send an event to every open channel except ``exclude``.

        Returns the number of channels that received it.
        """
        message = {"type": event_type, "data": data}
        delivered = 0
        disconnected = []

        # Snapshot: handlers may add or remove connections while we await
        for socket_id, state in list(self._connections.items()):
            if socket_id == exclude:
                continue
            try:
                await state.websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "WebSocket broadcast failed, marking client for removal",
                    extra={"event_type": event_type, "error": str(e)},
                )
                disconnected.append(socket_id)

        for socket_id in disconnected:
            self._connections.pop(socket_id, None)

        return delivered
