"""Visit model: one page load reported by the tracking beacon."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lightning_tracker.core.datetime_utils import isoformat_z, utc_now_naive
from lightning_tracker.db.base import Base
from lightning_tracker.db.types import PortableUUID


class Visit(Base):
    """Page visit with request metadata and client-reported locale details."""

    __tablename__ = "user_visits"

    id: Mapped[uuid.UUID] = mapped_column(
        PortableUUID(),
        primary_key=True,
        default=uuid.uuid4,
    )
    visitor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(200))
    referer: Mapped[str] = mapped_column(String(500), default="Direct")
    host: Mapped[str | None] = mapped_column(String(255))
    page: Mapped[str] = mapped_column(String(500), default="/")
    browser: Mapped[str | None] = mapped_column(String(32))
    platform: Mapped[str | None] = mapped_column(String(32))
    device_type: Mapped[str | None] = mapped_column(String(16))
    country: Mapped[str | None] = mapped_column(String(64))
    city: Mapped[str | None] = mapped_column(String(128))
    viewport: Mapped[str | None] = mapped_column(String(32))
    timezone: Mapped[str | None] = mapped_column(String(64))
    language: Mapped[str | None] = mapped_column(String(32))
    timestamp: Mapped[datetime] = mapped_column(DateTime(), nullable=False, default=utc_now_naive)

    __table_args__ = (
        Index("idx_user_visits_timestamp", "timestamp"),
        Index("idx_user_visits_visitor", "visitor_id"),
    )

    def to_dict(self) -> dict:
        return {
            "visitId": str(self.id),
            "sessionId": self.visitor_id,
            "ip": self.ip_address,
            "userAgent": self.user_agent,
            "referer": self.referer,
            "host": self.host,
            "page": self.page,
            "browser": self.browser,
            "os": self.platform,
            "device": self.device_type,
            "country": self.country,
            "city": self.city,
            "viewport": self.viewport,
            "timezone": self.timezone,
            "language": self.language,
            "timestamp": isoformat_z(self.timestamp),
        }
