"""Database models."""

from lightning_tracker.db.models.location_record import LocationRecord
from lightning_tracker.db.models.session import Session
from lightning_tracker.db.models.session_analytics import FEATURE_FLAGS, SessionAnalytics
from lightning_tracker.db.models.visit import Visit

__all__ = [
    "FEATURE_FLAGS",
    "LocationRecord",
    "Session",
    "SessionAnalytics",
    "Visit",
]
