"""Database engine and session management.

Persistence is optional: without a connection string, or when the database
cannot be reached at startup, ``Database.is_connected`` stays False and the
stores report every call as a failed ``StoreResult``.
"""

import asyncio
import pathlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from lightning_tracker.core.logging import get_logger
from lightning_tracker.db.base import Base
from lightning_tracker.db import models  # noqa: F401  registers tables on Base.metadata

logger = get_logger(__name__)

MIGRATION_TIMEOUT_SECONDS = 60.0
CONNECT_TIMEOUT_SECONDS = 10.0


class Database:
    """Async engine wrapper that tracks whether persistence is usable."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self.engine: AsyncEngine | None = None
        self.session_maker: async_sessionmaker[AsyncSession] | None = None
        self.is_connected = False

    def _create_engine(self) -> AsyncEngine:
        if self.url.startswith("sqlite") and ":memory:" in self.url:
            # A single shared connection keeps the in-memory database alive
            return create_async_engine(
                self.url,
                echo=self.echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_async_engine(self.url, echo=self.echo, pool_pre_ping=True)

    async def connect(self, run_migrations: bool = False) -> bool:
        """Open the engine, verify connectivity and prepare the schema.

        Returns False (and leaves the database disconnected) instead of
        raising when the database is unreachable.
        """
        if self.is_connected:
            return True
        if not self.url:
            logger.warning("DATABASE_URL not configured, persistence disabled")
            return False

        try:
            self.engine = self._create_engine()
            async with self.engine.connect() as conn:
                await asyncio.wait_for(conn.execute(text("SELECT 1")), timeout=CONNECT_TIMEOUT_SECONDS)

            if run_migrations:
                await asyncio.wait_for(
                    asyncio.to_thread(self._run_migrations),
                    timeout=MIGRATION_TIMEOUT_SECONDS,
                )
            else:
                async with self.engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Database unavailable, persistence disabled: {e}")
            if self.engine is not None:
                await self.engine.dispose()
            self.engine = None
            return False

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self.is_connected = True
        logger.info("Database connected", extra={"event_type": "db_connected"})
        return True

    def _run_migrations(self) -> None:
        from alembic.config import Config

        from alembic import command  # type: ignore[attr-defined]

        base_dir = pathlib.Path(__file__).resolve().parent.parent.parent
        alembic_cfg = Config(str(base_dir / "alembic.ini"))
        alembic_cfg.set_main_option("script_location", str(base_dir / "alembic"))
        alembic_cfg.set_main_option("sqlalchemy.url", self.url)
        command.upgrade(alembic_cfg, "head")

    async def disconnect(self) -> None:
        """Dispose the engine."""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database disconnected", extra={"event_type": "db_disconnected"})
        self.engine = None
        self.session_maker = None
        self.is_connected = False

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield an ORM session; callers must check ``is_connected`` first."""
        if self.session_maker is None:
            raise RuntimeError("Database is not connected")
        async with self.session_maker() as session:
            yield session

