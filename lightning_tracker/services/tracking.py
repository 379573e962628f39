"""Wiring of the tracking pipeline components."""

from datetime import timedelta
from typing import Any

from lightning_tracker.core.datetime_utils import utc_now_naive
from lightning_tracker.core.logging import get_logger
from lightning_tracker.core.result import StoreResult
from lightning_tracker.db.session import Database
from lightning_tracker.db.stores import AnalyticsStore, LocationStore, SessionStore, VisitStore
from lightning_tracker.services.analytics import AnalyticsUpdater
from lightning_tracker.services.environment import EnvironmentalDataProvider
from lightning_tracker.services.ingestion import LocationIngestor
from lightning_tracker.services.sessions import SessionLifecycleManager
from lightning_tracker.services.visits import VisitTracker

logger = get_logger(__name__)

RECENT_VISIT_WINDOW = timedelta(hours=24)
RECENT_VISIT_LIMIT = 10


class TrackingService:
    """Owns the stores and exposes the session, ingestion and analytics components."""

    def __init__(
        self,
        database: Database,
        environment: EnvironmentalDataProvider,
    ) -> None:
        self.database = database
        self.environment = environment

        self.session_store = SessionStore(database)
        self.location_store = LocationStore(database)
        self.analytics_store = AnalyticsStore(database)
        self.visit_store = VisitStore(database)

        self.sessions = SessionLifecycleManager(self.session_store)
        self.analytics = AnalyticsUpdater(self.analytics_store)
        self.ingestor = LocationIngestor(self.session_store, self.location_store, self.analytics)
        self.visits = VisitTracker(self.visit_store)

    @property
    def db_status(self) -> str:
        return "Connected" if self.database.is_connected else "Disconnected"

    async def get_database_stats(self) -> dict[str, Any]:
        """Aggregate counts across the collections plus the latest visits."""
        sessions = await self.session_store.counts()
        locations = await self.location_store.count()
        analytics = await self.analytics_store.count()
        visits = await self.visit_store.counts(utc_now_naive() - RECENT_VISIT_WINDOW)
        latest_visits = await self.visit_store.latest(RECENT_VISIT_LIMIT)

        failed = [r.error for r in (sessions, locations, analytics, visits, latest_visits) if not r.ok]
        if failed:
            if self.database.is_connected:
                logger.warning(f"Database stats unavailable: {failed[0]}")
            return {
                "totalSessions": 0,
                "activeSessions": 0,
                "totalLocations": 0,
                "totalAnalytics": 0,
                "totalVisits": 0,
                "recentVisitsCount": 0,
                "recentVisits": [],
                "dbStatus": "Disconnected",
            }

        session_counts = sessions.value or {}
        visit_counts = visits.value or {}
        return {
            "totalSessions": session_counts.get("total", 0),
            "activeSessions": session_counts.get("active", 0),
            "totalLocations": locations.value or 0,
            "totalAnalytics": analytics.value or 0,
            "totalVisits": visit_counts.get("total", 0),
            "recentVisitsCount": visit_counts.get("recent", 0),
            "recentVisits": [visit.to_dict() for visit in latest_visits.value or []],
            "dbStatus": self.db_status,
        }

    async def get_active_sessions(self) -> StoreResult[list[dict[str, Any]]]:
        found = await self.session_store.list_active()
        if not found.ok:
            return StoreResult.failure(found.error or "unknown error")
        return StoreResult.success([session.to_dict() for session in found.value or []])

    async def get_session_stats(self, session_id: str) -> StoreResult[dict[str, Any] | None]:
        """Session, its analytics and its location count; None if unknown."""
        session = await self.session_store.get(session_id)
        if not session.ok:
            return StoreResult.failure(session.error or "unknown error")
        if session.value is None:
            return StoreResult.success(None)

        analytics = await self.analytics_store.get(session_id)
        location_count = await self.location_store.count(session_id)
        if not analytics.ok or not location_count.ok:
            return StoreResult.failure(analytics.error or location_count.error or "unknown error")

        return StoreResult.success(
            {
                "session": session.value.to_dict(),
                "analytics": analytics.value.to_dict() if analytics.value else None,
                "locationCount": location_count.value or 0,
            }
        )
