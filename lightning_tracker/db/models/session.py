"""Session model: one connected-client lifetime."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lightning_tracker.core.datetime_utils import utc_now_naive
from lightning_tracker.db.base import Base
from lightning_tracker.db.types import PortableUUID


class Session(Base):
    """Channel open-to-close lifetime of one browser client."""

    __tablename__ = "sessions"

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
    socket_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_agent: Mapped[str | None] = mapped_column(String(200))
    ip_address: Mapped[str | None] = mapped_column(String(64))
    platform: Mapped[str | None] = mapped_column(String(32))
    browser: Mapped[str | None] = mapped_column(String(32))
    mobile: Mapped[bool] = mapped_column(Boolean, default=False)
    connection_time: Mapped[datetime] = mapped_column(DateTime(), nullable=False, default=utc_now_naive)
    disconnection_time: Mapped[datetime | None] = mapped_column(DateTime())
    session_duration: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=utc_now_naive,
        onupdate=utc_now_naive,
    )

    __table_args__ = (
        Index("idx_sessions_connection_time", "connection_time"),
        Index("idx_sessions_socket_active", "socket_id", "is_active"),
        Index("idx_sessions_is_active", "is_active"),
    )

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "socketId": self.socket_id,
            "userAgent": self.user_agent,
            "ipAddress": self.ip_address,
            "deviceInfo": {
                "platform": self.platform,
                "browser": self.browser,
                "mobile": self.mobile,
            },
            "connectionTime": self.connection_time,
            "disconnectionTime": self.disconnection_time,
            "sessionDuration": self.session_duration,
            "isActive": self.is_active,
        }
