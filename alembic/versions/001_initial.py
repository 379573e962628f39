"""Create sessions, location records and session analytics.

Revision ID: 001
Revises:
Create Date: 2026-10-16

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op
from lightning_tracker.db.types import JSONType, PortableUUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create tracking tables."""

    op.create_table(
        "sessions",
        sa.Column("id", PortableUUID(), primary_key=True),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("socket_id", sa.String(64), nullable=False),
        sa.Column("user_agent", sa.String(200), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("platform", sa.String(32), nullable=True),
        sa.Column("browser", sa.String(32), nullable=True),
        sa.Column("mobile", sa.Boolean(), nullable=True),
        sa.Column("connection_time", sa.DateTime(), nullable=False),
        sa.Column("disconnection_time", sa.DateTime(), nullable=True),
        sa.Column("session_duration", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_sessions_session_id", "sessions", ["session_id"], unique=True)
    op.create_index("idx_sessions_connection_time", "sessions", ["connection_time"])
    op.create_index("idx_sessions_socket_active", "sessions", ["socket_id", "is_active"])
    op.create_index("idx_sessions_is_active", "sessions", ["is_active"])

    op.create_table(
        "location_records",
        sa.Column("id", PortableUUID(), primary_key=True),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("socket_id", sa.String(64), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("accuracy", sa.Float(), nullable=True),
        sa.Column("altitude", sa.Float(), nullable=True),
        sa.Column("speed", sa.Float(), nullable=True),
        sa.Column("environmental", JSONType(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_location_records_session_time", "location_records", ["session_id", "timestamp"])
    op.create_index("idx_location_records_coordinates", "location_records", ["latitude", "longitude"])
    op.create_index("idx_location_records_timestamp", "location_records", ["timestamp"])

    op.create_table(
        "session_analytics",
        sa.Column("id", PortableUUID(), primary_key=True),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("total_location_updates", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_distance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("max_speed", sa.Float(), nullable=False, server_default="0"),
        sa.Column("average_speed", sa.Float(), nullable=False, server_default="0"),
        sa.Column("tracking_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("satellite_view", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("trail_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("speed_mode", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("start_latitude", sa.Float(), nullable=True),
        sa.Column("start_longitude", sa.Float(), nullable=True),
        sa.Column("end_latitude", sa.Float(), nullable=True),
        sa.Column("end_longitude", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_session_analytics_session_id", "session_analytics", ["session_id"], unique=True)


def downgrade() -> None:
    """Drop tracking tables."""
    op.drop_index("ix_session_analytics_session_id", table_name="session_analytics")
    op.drop_table("session_analytics")

    op.drop_index("idx_location_records_timestamp", table_name="location_records")
    op.drop_index("idx_location_records_coordinates", table_name="location_records")
    op.drop_index("idx_location_records_session_time", table_name="location_records")
    op.drop_table("location_records")

    op.drop_index("idx_sessions_is_active", table_name="sessions")
    op.drop_index("idx_sessions_socket_active", table_name="sessions")
    op.drop_index("idx_sessions_connection_time", table_name="sessions")
    op.drop_index("ix_sessions_session_id", table_name="sessions")
    op.drop_table("sessions")
