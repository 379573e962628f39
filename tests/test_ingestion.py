"""Tests for location ingestion and the tracking facade."""

import pytest

from lightning_tracker.core.datetime_utils import utc_now_naive
from lightning_tracker.services.tracking import TrackingService

ENVIRONMENTAL = {"temperature": 21, "humidity": 55, "source": "mock"}


class TestRecordLocation:
    @pytest.mark.asyncio
    async def test_records_location_and_updates_analytics(self, tracking: TrackingService):
        session_id = await tracking.sessions.open_session("socket-1", None, None)

        stored = await tracking.ingestor.record_location(
            "socket-1",
            {"latitude": 0.0, "longitude": 0.0, "accuracy": 5.0, "speed": 2.0, "altitude": None},
            ENVIRONMENTAL,
            utc_now_naive(),
        )
        assert stored is True
        await tracking.ingestor.record_location(
            "socket-1",
            {"latitude": 0.0, "longitude": 1.0, "accuracy": 5.0, "speed": 1.0, "altitude": None},
            ENVIRONMENTAL,
            utc_now_naive(),
        )

        assert (await tracking.location_store.count(session_id)).value == 2
        analytics = (await tracking.analytics_store.get(session_id)).value
        assert analytics.total_location_updates == 2
        assert analytics.max_speed == pytest.approx(7.2)
        assert analytics.total_distance == pytest.approx(111.19, abs=0.01)
        assert analytics.end_longitude == 1.0

    @pytest.mark.asyncio
    async def test_drops_update_without_active_session(self, tracking: TrackingService):
        stored = await tracking.ingestor.record_location(
            "socket-unknown",
            {"latitude": 1.0, "longitude": 1.0},
            ENVIRONMENTAL,
            utc_now_naive(),
        )

        assert stored is False
        assert (await tracking.location_store.count()).value == 0

    @pytest.mark.asyncio
    async def test_drops_update_after_session_closed(self, tracking: TrackingService):
        await tracking.sessions.open_session("socket-1", None, None)
        await tracking.sessions.close_session("socket-1")

        stored = await tracking.ingestor.record_location(
            "socket-1", {"latitude": 1.0, "longitude": 1.0}, ENVIRONMENTAL, utc_now_naive()
        )

        assert stored is False

    @pytest.mark.asyncio
    async def test_degraded_without_database(self, offline_tracking: TrackingService):
        stored = await offline_tracking.ingestor.record_location(
            "socket-1", {"latitude": 1.0, "longitude": 1.0}, ENVIRONMENTAL, utc_now_naive()
        )
        assert stored is False


class TestTrackingStats:
    @pytest.mark.asyncio
    async def test_database_stats(self, tracking: TrackingService):
        await tracking.sessions.open_session("socket-1", None, None)
        await tracking.sessions.open_session("socket-2", None, None)
        await tracking.sessions.close_session("socket-2")
        await tracking.ingestor.record_location(
            "socket-1", {"latitude": 1.0, "longitude": 1.0}, ENVIRONMENTAL, utc_now_naive()
        )

        stats = await tracking.get_database_stats()

        assert stats == {
            "totalSessions": 2,
            "activeSessions": 1,
            "totalLocations": 1,
            "totalAnalytics": 2,
            "totalVisits": 0,
            "recentVisitsCount": 0,
            "recentVisits": [],
            "dbStatus": "Connected",
        }

    @pytest.mark.asyncio
    async def test_database_stats_when_disconnected(self, offline_tracking: TrackingService):
        stats = await offline_tracking.get_database_stats()

        assert stats["dbStatus"] == "Disconnected"
        assert stats["totalSessions"] == 0

    @pytest.mark.asyncio
    async def test_session_stats(self, tracking: TrackingService):
        session_id = await tracking.sessions.open_session("socket-1", None, None)
        await tracking.ingestor.record_location(
            "socket-1", {"latitude": 1.0, "longitude": 1.0}, ENVIRONMENTAL, utc_now_naive()
        )

        result = await tracking.get_session_stats(session_id)

        assert result.ok
        assert result.value["session"]["sessionId"] == session_id
        assert result.value["analytics"]["totalLocationUpdates"] == 1
        assert result.value["locationCount"] == 1

    @pytest.mark.asyncio
    async def test_session_stats_unknown(self, tracking: TrackingService):
        result = await tracking.get_session_stats("session_missing")
        assert result.ok
        assert result.value is None

    @pytest.mark.asyncio
    async def test_active_sessions(self, tracking: TrackingService):
        session_id = await tracking.sessions.open_session("socket-1", None, None)

        result = await tracking.get_active_sessions()

        assert result.ok
        assert [s["sessionId"] for s in result.value] == [session_id]
