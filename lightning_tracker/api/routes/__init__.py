"""API routes."""

from lightning_tracker.api.routes import admin, health, location, realtime, visits

__all__ = [
    "admin",
    "health",
    "location",
    "realtime",
    "visits",
]
