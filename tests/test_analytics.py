"""Tests for session analytics aggregation."""

from types import SimpleNamespace

import pytest

from lightning_tracker.services.analytics import apply_location, resolve_feature
from lightning_tracker.services.tracking import TrackingService


def _empty_aggregate() -> SimpleNamespace:
    return SimpleNamespace(
        total_location_updates=0,
        total_distance=0.0,
        max_speed=0.0,
        start_latitude=None,
        start_longitude=None,
        end_latitude=None,
        end_longitude=None,
    )


class TestApplyLocation:
    """Folding coordinates into the running aggregate."""

    def test_first_update_sets_start_and_end(self):
        aggregate = _empty_aggregate()

        apply_location(aggregate, {"latitude": 10.0, "longitude": 20.0, "speed": None})

        assert aggregate.total_location_updates == 1
        assert aggregate.total_distance == 0.0
        assert (aggregate.start_latitude, aggregate.start_longitude) == (10.0, 20.0)
        assert (aggregate.end_latitude, aggregate.end_longitude) == (10.0, 20.0)

    def test_start_is_kept_and_end_follows(self):
        aggregate = _empty_aggregate()

        apply_location(aggregate, {"latitude": 10.0, "longitude": 20.0})
        apply_location(aggregate, {"latitude": 11.0, "longitude": 21.0})

        assert aggregate.total_location_updates == 2
        assert (aggregate.start_latitude, aggregate.start_longitude) == (10.0, 20.0)
        assert (aggregate.end_latitude, aggregate.end_longitude) == (11.0, 21.0)

    def test_max_speed_is_converted_and_monotonic(self):
        aggregate = _empty_aggregate()

        apply_location(aggregate, {"latitude": 0.0, "longitude": 0.0, "speed": 10.0})
        assert aggregate.max_speed == pytest.approx(36.0)

        apply_location(aggregate, {"latitude": 0.0, "longitude": 0.0, "speed": 5.0})
        apply_location(aggregate, {"latitude": 0.0, "longitude": 0.0, "speed": None})
        assert aggregate.max_speed == pytest.approx(36.0)

        apply_location(aggregate, {"latitude": 0.0, "longitude": 0.0, "speed": 20.0})
        assert aggregate.max_speed == pytest.approx(72.0)

    def test_overflowing_speed_is_ignored(self):
        aggregate = _empty_aggregate()

        apply_location(aggregate, {"latitude": 0.0, "longitude": 0.0, "speed": 10.0})
        apply_location(aggregate, {"latitude": 0.0, "longitude": 0.0, "speed": 1e308})
        apply_location(aggregate, {"latitude": 0.0, "longitude": 0.0, "speed": float("nan")})

        assert aggregate.max_speed == pytest.approx(36.0)
        assert aggregate.total_location_updates == 3

    def test_distance_accumulates_between_consecutive_points(self):
        aggregate = _empty_aggregate()

        for longitude in (0.0, 1.0, 2.0):
            apply_location(aggregate, {"latitude": 0.0, "longitude": longitude})

        assert aggregate.total_distance == pytest.approx(2 * 111.19, abs=0.05)


class TestResolveFeature:
    def test_camel_case_names(self):
        assert resolve_feature("satelliteView") == "satellite_view"
        assert resolve_feature("trailMode") == "trail_mode"
        assert resolve_feature("speedMode") == "speed_mode"

    def test_snake_case_names(self):
        assert resolve_feature("trail_mode") == "trail_mode"

    def test_unknown_feature(self):
        assert resolve_feature("nightMode") is None


class TestAnalyticsUpdater:
    """Aggregates stored in the database."""

    @pytest.mark.asyncio
    async def test_location_update_persists(self, tracking: TrackingService):
        session_id = await tracking.sessions.open_session("socket-1", None, None)

        await tracking.analytics.apply_location_update(
            session_id, {"latitude": 1.0, "longitude": 2.0, "speed": 3.0}
        )

        stored = (await tracking.analytics_store.get(session_id)).value
        assert stored.total_location_updates == 1
        assert stored.max_speed == pytest.approx(10.8)
        assert stored.to_dict()["startLocation"] == {"latitude": 1.0, "longitude": 2.0}

    @pytest.mark.asyncio
    async def test_feature_toggle_is_idempotent(self, tracking: TrackingService):
        session_id = await tracking.sessions.open_session("socket-1", None, None)

        assert await tracking.analytics.apply_feature_toggle(session_id, "satelliteView")
        assert await tracking.analytics.apply_feature_toggle(session_id, "satelliteView")

        stored = (await tracking.analytics_store.get(session_id)).value
        assert stored.features_used == {
            "satelliteView": True,
            "trailMode": False,
            "speedMode": False,
        }

    @pytest.mark.asyncio
    async def test_unknown_feature_is_ignored(self, tracking: TrackingService):
        session_id = await tracking.sessions.open_session("socket-1", None, None)

        assert not await tracking.analytics.apply_feature_toggle(session_id, "nightMode")

        stored = (await tracking.analytics_store.get(session_id)).value
        assert not any(stored.features_used.values())

    @pytest.mark.asyncio
    async def test_missing_aggregate_is_a_no_op(self, tracking: TrackingService):
        result = await tracking.analytics.apply_location_update(
            "session_unknown", {"latitude": 1.0, "longitude": 2.0}
        )
        assert result is None

    @pytest.mark.asyncio
    async def test_disconnected_database_is_tolerated(self, offline_tracking: TrackingService):
        assert not await offline_tracking.analytics.apply_feature_toggle("session_x", "trailMode")
        assert (
            await offline_tracking.analytics.apply_location_update(
                "session_x", {"latitude": 1.0, "longitude": 2.0}
            )
            is None
        )
