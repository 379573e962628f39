"""Location ingestion: append to the location log and update analytics."""

from datetime import datetime
from typing import Any

from lightning_tracker.core.logging import get_logger
from lightning_tracker.db.stores import LocationStore, SessionStore
from lightning_tracker.services.analytics import AnalyticsUpdater

logger = get_logger(__name__)


class LocationIngestor:
    """Persists location updates for channels with an active session."""

    def __init__(
        self,
        sessions: SessionStore,
        locations: LocationStore,
        analytics: AnalyticsUpdater,
    ) -> None:
        self.sessions = sessions
        self.locations = locations
        self.analytics = analytics

    async def record_location(
        self,
        channel_id: str,
        coordinates: dict[str, Any],
        environmental: dict[str, Any],
        client_timestamp: datetime,
    ) -> bool:
        """Store one update. Returns False when it was dropped."""
        found = await self.sessions.find_active(channel_id)
        if not found.ok:
            logger.warning(
                f"Location not logged for {channel_id}: {found.error}",
                extra={"event_type": "location_degraded"},
            )
            return False

        session = found.value
        if session is None:
            logger.warning(
                "No active session found for location logging",
                extra={"event_type": "location_dropped"},
            )
            return False

        appended = await self.locations.append(
            session_id=session.session_id,
            socket_id=channel_id,
            coordinates=coordinates,
            environmental=environmental,
            timestamp=client_timestamp,
        )
        if not appended.ok:
            logger.warning(
                f"Location not logged for {session.session_id}: {appended.error}",
                extra={"event_type": "location_degraded"},
            )
            return False

        await self.analytics.apply_location_update(session.session_id, coordinates)

        logger.debug(f"Location logged for session: {session.session_id}")
        return True
