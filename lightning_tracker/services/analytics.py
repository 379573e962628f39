"""Session analytics aggregation."""

import math
from typing import Any, Protocol

from lightning_tracker.core.geo import haversine_km, speed_to_kmh
from lightning_tracker.core.logging import get_logger
from lightning_tracker.db.models import FEATURE_FLAGS, SessionAnalytics
from lightning_tracker.db.stores import AnalyticsStore

logger = get_logger(__name__)


class Aggregate(Protocol):
    """Fields of the analytics aggregate touched by a location update."""

    total_location_updates: int
    total_distance: float
    max_speed: float
    start_latitude: float | None
    start_longitude: float | None
    end_latitude: float | None
    end_longitude: float | None


def resolve_feature(name: str) -> str | None:
    """Map a client feature name (camelCase or snake_case) to its column."""
    if name in FEATURE_FLAGS:
        return FEATURE_FLAGS[name]
    if name in FEATURE_FLAGS.values():
        return name
    return None


def apply_location(aggregate: Aggregate, coordinates: dict[str, Any]) -> None:
    """Fold one coordinate into the running aggregate.

    Distance is accumulated here from the previous end coordinate, so the
    server's total does not depend on what any client reports.
    """
    latitude = coordinates["latitude"]
    longitude = coordinates["longitude"]

    if aggregate.end_latitude is not None and aggregate.end_longitude is not None:
        aggregate.total_distance = (aggregate.total_distance or 0.0) + haversine_km(
            aggregate.end_latitude,
            aggregate.end_longitude,
            latitude,
            longitude,
        )

    aggregate.total_location_updates = (aggregate.total_location_updates or 0) + 1

    speed_kmh = speed_to_kmh(coordinates.get("speed"))
    if math.isfinite(speed_kmh) and speed_kmh > (aggregate.max_speed or 0.0):
        aggregate.max_speed = speed_kmh

    if aggregate.total_location_updates == 1:
        aggregate.start_latitude = latitude
        aggregate.start_longitude = longitude

    aggregate.end_latitude = latitude
    aggregate.end_longitude = longitude


class AnalyticsUpdater:
    """Applies location updates and feature toggles to stored aggregates."""

    def __init__(self, store: AnalyticsStore) -> None:
        self.store = store

    async def apply_location_update(
        self,
        session_id: str,
        coordinates: dict[str, Any],
    ) -> SessionAnalytics | None:
        def mutate(analytics: SessionAnalytics) -> bool:
            apply_location(analytics, coordinates)
            return True

        result = await self.store.modify(session_id, mutate)
        if not result.ok:
            logger.warning(
                f"Analytics update skipped for {session_id}: {result.error}",
                extra={"event_type": "analytics_degraded"},
            )
            return None
        return result.value

    async def apply_feature_toggle(self, session_id: str, feature: str) -> bool:
        """Set a feature flag; unknown features are ignored.

        Returns True when the flag is set after the call.
        """
        column = resolve_feature(feature)
        if column is None:
            logger.debug(f"Ignoring unknown feature {feature!r}")
            return False

        def mutate(analytics: SessionAnalytics) -> bool:
            if getattr(analytics, column):
                return False
            setattr(analytics, column, True)
            return True

        result = await self.store.modify(session_id, mutate)
        if not result.ok:
            logger.warning(
                f"Feature usage not recorded for {session_id}: {result.error}",
                extra={"event_type": "analytics_degraded"},
            )
            return False
        if result.value is None:
            return False

        logger.info(
            f"Feature usage logged: {feature} for session {session_id}",
            extra={"event_type": "feature_used", "feature": column},
        )
        return True
