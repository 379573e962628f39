"""Location record model: one row per accepted location update."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lightning_tracker.core.datetime_utils import utc_now_naive
from lightning_tracker.db.base import Base
from lightning_tracker.db.types import JSONType, PortableUUID


class LocationRecord(Base):
    """Immutable GPS fix with the environmental reading seen at that moment."""

    __tablename__ = "location_records"

    id: Mapped[uuid.UUID] = mapped_column(
        PortableUUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Logical reference to sessions.session_id, not enforced
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    socket_id: Mapped[str | None] = mapped_column(String(64))
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    accuracy: Mapped[float | None] = mapped_column(Float)
    altitude: Mapped[float | None] = mapped_column(Float)
    speed: Mapped[float | None] = mapped_column(Float)
    environmental: Mapped[dict[str, Any]] = mapped_column(JSONType(), default=dict)
    timestamp: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now_naive)

    __table_args__ = (
        Index("idx_location_records_session_time", "session_id", "timestamp"),
        Index("idx_location_records_coordinates", "latitude", "longitude"),
        Index("idx_location_records_timestamp", "timestamp"),
    )
