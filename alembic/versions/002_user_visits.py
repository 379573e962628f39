"""Add user visits.

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op
from lightning_tracker.db.types import PortableUUID

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create user_visits table."""
    op.create_table(
        "user_visits",
        sa.Column("id", PortableUUID(), primary_key=True),
        sa.Column("visitor_id", sa.String(64), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(200), nullable=True),
        sa.Column("referer", sa.String(500), nullable=False, server_default="Direct"),
        sa.Column("host", sa.String(255), nullable=True),
        sa.Column("page", sa.String(500), nullable=False, server_default="/"),
        sa.Column("browser", sa.String(32), nullable=True),
        sa.Column("platform", sa.String(32), nullable=True),
        sa.Column("device_type", sa.String(16), nullable=True),
        sa.Column("country", sa.String(64), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("viewport", sa.String(32), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("language", sa.String(32), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_user_visits_timestamp", "user_visits", ["timestamp"])
    op.create_index("idx_user_visits_visitor", "user_visits", ["visitor_id"])


def downgrade() -> None:
    """Drop user_visits table."""
    op.drop_index("idx_user_visits_visitor", table_name="user_visits")
    op.drop_index("idx_user_visits_timestamp", table_name="user_visits")
    op.drop_table("user_visits")
