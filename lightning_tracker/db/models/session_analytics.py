"""Per-session analytics aggregate."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lightning_tracker.core.datetime_utils import utc_now_naive
from lightning_tracker.db.base import Base
from lightning_tracker.db.types import PortableUUID

# Client feature name -> column
FEATURE_FLAGS: dict[str, str] = {
    "satelliteView": "satellite_view",
    "trailMode": "trail_mode",
    "speedMode": "speed_mode",
}


class SessionAnalytics(Base):
    """Running summary of one session's location updates and feature usage."""

    __tablename__ = "session_analytics"

    id: Mapped[uuid.UUID] = mapped_column(
        PortableUUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    total_location_updates: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_distance: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)  # km
    max_speed: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)  # km/h
    average_speed: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    tracking_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # seconds
    satellite_view: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trail_mode: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    speed_mode: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    start_latitude: Mapped[float | None] = mapped_column(Float)
    start_longitude: Mapped[float | None] = mapped_column(Float)
    end_latitude: Mapped[float | None] = mapped_column(Float)
    end_longitude: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=utc_now_naive,
        onupdate=utc_now_naive,
    )

    @property
    def features_used(self) -> dict[str, bool]:
        return {name: bool(getattr(self, column)) for name, column in FEATURE_FLAGS.items()}

    def to_dict(self) -> dict:
        start = None
        if self.start_latitude is not None:
            start = {"latitude": self.start_latitude, "longitude": self.start_longitude}
        end = None
        if self.end_latitude is not None:
            end = {"latitude": self.end_latitude, "longitude": self.end_longitude}
        return {
            "sessionId": self.session_id,
            "totalLocationUpdates": self.total_location_updates,
            "totalDistance": self.total_distance,
            "maxSpeed": self.max_speed,
            "averageSpeed": self.average_speed,
            "trackingDuration": self.tracking_duration,
            "featuresUsed": self.features_used,
            "startLocation": start,
            "endLocation": end,
        }
