"""Persistence stores for sessions, location records, analytics and visits.

Every public coroutine returns a ``StoreResult``. Database errors and a
disabled database are reported as failed results rather than raised, so the
calling service decides at the call site how to degrade.
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from lightning_tracker.core.result import StoreResult
from lightning_tracker.db.models import LocationRecord, Session, SessionAnalytics, Visit
from lightning_tracker.db.session import Database

P = ParamSpec("P")
T = TypeVar("T")

# Driver-level errors (refused connection, dropped socket, timeout) are not
# wrapped by SQLAlchemy when the server goes away after startup
DATABASE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


def guarded(
    method: Callable[P, Awaitable[StoreResult[T]]],
) -> Callable[P, Awaitable[StoreResult[T]]]:
    """Short-circuit when disconnected and turn database errors into failures."""

    @functools.wraps(method)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> StoreResult[T]:
        store = args[0]
        if not store.database.is_connected:  # type: ignore[attr-defined]
            return StoreResult.disabled()
        try:
            return await method(*args, **kwargs)
        except DATABASE_ERRORS as e:
            return StoreResult.failure(f"{type(e).__name__}: {e}")

    return wrapper


class SessionStore:
    """Session rows and their paired analytics rows."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @guarded
    async def create(
        self,
        *,
        session_id: str,
        socket_id: str,
        user_agent: str | None,
        ip_address: str | None,
        platform: str | None,
        browser: str | None,
        mobile: bool,
        connection_time: datetime,
    ) -> StoreResult[str]:
        """Insert an active Session and its zeroed SessionAnalytics together."""
        async with self.database.session() as db:
            db.add(
                Session(
                    session_id=session_id,
                    socket_id=socket_id,
                    user_agent=user_agent,
                    ip_address=ip_address,
                    platform=platform,
                    browser=browser,
                    mobile=mobile,
                    connection_time=connection_time,
                    is_active=True,
                )
            )
            db.add(
                SessionAnalytics(
                    session_id=session_id,
                    total_location_updates=0,
                    total_distance=0.0,
                    max_speed=0.0,
                    average_speed=0.0,
                    tracking_duration=0,
                )
            )
            await db.commit()
        return StoreResult.success(session_id)

    @guarded
    async def find_active(self, socket_id: str) -> StoreResult[Session | None]:
        """Newest active session for a channel, or None."""
        async with self.database.session() as db:
            result = await db.execute(
                select(Session)
                .where(Session.socket_id == socket_id)
                .where(Session.is_active.is_(True))
                .order_by(desc(Session.connection_time))
                .limit(1)
            )
            return StoreResult.success(result.scalar_one_or_none())

    @guarded
    async def mark_closed(
        self,
        session_id: str,
        disconnection_time: datetime,
        session_duration: int,
    ) -> StoreResult[bool]:
        """Close an active session in one UPDATE; False if it was already closed."""
        async with self.database.session() as db:
            result = await db.execute(
                update(Session)
                .where(Session.session_id == session_id)
                .where(Session.is_active.is_(True))
                .values(
                    disconnection_time=disconnection_time,
                    session_duration=session_duration,
                    is_active=False,
                )
            )
            await db.commit()
            return StoreResult.success(result.rowcount > 0)

    @guarded
    async def list_active(self) -> StoreResult[list[Session]]:
        """Active sessions, newest first."""
        async with self.database.session() as db:
            result = await db.execute(
                select(Session)
                .where(Session.is_active.is_(True))
                .order_by(desc(Session.connection_time))
            )
            return StoreResult.success(list(result.scalars().all()))

    @guarded
    async def get(self, session_id: str) -> StoreResult[Session | None]:
        async with self.database.session() as db:
            result = await db.execute(select(Session).where(Session.session_id == session_id))
            return StoreResult.success(result.scalar_one_or_none())

    @guarded
    async def counts(self) -> StoreResult[dict[str, int]]:
        """Total and active session counts."""
        async with self.database.session() as db:
            total = await db.scalar(select(func.count()).select_from(Session))
            active = await db.scalar(
                select(func.count()).select_from(Session).where(Session.is_active.is_(True))
            )
            return StoreResult.success({"total": total or 0, "active": active or 0})


class LocationStore:
    """Append-only location log."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @guarded
    async def append(
        self,
        *,
        session_id: str,
        socket_id: str,
        coordinates: dict[str, Any],
        environmental: dict[str, Any],
        timestamp: datetime,
    ) -> StoreResult[LocationRecord]:
        async with self.database.session() as db:
            record = LocationRecord(
                session_id=session_id,
                socket_id=socket_id,
                latitude=coordinates["latitude"],
                longitude=coordinates["longitude"],
                accuracy=coordinates.get("accuracy"),
                altitude=coordinates.get("altitude"),
                speed=coordinates.get("speed"),
                environmental=environmental,
                timestamp=timestamp,
            )
            db.add(record)
            await db.commit()
            return StoreResult.success(record)

    @guarded
    async def count(self, session_id: str | None = None) -> StoreResult[int]:
        async with self.database.session() as db:
            query = select(func.count()).select_from(LocationRecord)
            if session_id is not None:
                query = query.where(LocationRecord.session_id == session_id)
            return StoreResult.success(await db.scalar(query) or 0)


class AnalyticsStore:
    """Read-modify-write access to SessionAnalytics rows.

    Concurrent updates to the same row are last-write-wins.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    @guarded
    async def get(self, session_id: str) -> StoreResult[SessionAnalytics | None]:
        async with self.database.session() as db:
            result = await db.execute(
                select(SessionAnalytics).where(SessionAnalytics.session_id == session_id)
            )
            return StoreResult.success(result.scalar_one_or_none())

    @guarded
    async def modify(
        self,
        session_id: str,
        mutate: Callable[[SessionAnalytics], bool],
    ) -> StoreResult[SessionAnalytics | None]:
        """Load the row, apply ``mutate`` and commit if it reports a change.

        Returns a successful None result when the row does not exist.
        """
        async with self.database.session() as db:
            result = await db.execute(
                select(SessionAnalytics).where(SessionAnalytics.session_id == session_id)
            )
            analytics = result.scalar_one_or_none()
            if analytics is None:
                return StoreResult.success(None)
            if mutate(analytics):
                await db.commit()
            return StoreResult.success(analytics)

    @guarded
    async def count(self) -> StoreResult[int]:
        async with self.database.session() as db:
            return StoreResult.success(
                await db.scalar(select(func.count()).select_from(SessionAnalytics)) or 0
            )


class VisitStore:
    """Append-only log of page visits."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @guarded
    async def append(self, visit: Visit) -> StoreResult[Visit]:
        async with self.database.session() as db:
            db.add(visit)
            await db.commit()
            return StoreResult.success(visit)

    @guarded
    async def counts(self, since: datetime) -> StoreResult[dict[str, int]]:
        """Total visits and visits at or after ``since``."""
        async with self.database.session() as db:
            total = await db.scalar(select(func.count()).select_from(Visit))
            recent = await db.scalar(
                select(func.count()).select_from(Visit).where(Visit.timestamp >= since)
            )
            return StoreResult.success({"total": total or 0, "recent": recent or 0})

    @guarded
    async def latest(self, limit: int = 10) -> StoreResult[list[Visit]]:
        """Most recent visits, newest first."""
        async with self.database.session() as db:
            result = await db.execute(select(Visit).order_by(desc(Visit.timestamp)).limit(limit))
            return StoreResult.success(list(result.scalars().all()))
