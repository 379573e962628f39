"""Session lifecycle: open on channel connect, close on disconnect."""

import math
import secrets
import string
import time

from lightning_tracker.core.datetime_utils import utc_now_naive
from lightning_tracker.core.logging import get_logger
from lightning_tracker.db.models import Session
from lightning_tracker.db.stores import SessionStore
from lightning_tracker.services.device_info import parse_user_agent

logger = get_logger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """``session_<epoch ms>_<9 random chars>``; collisions are not guarded against."""
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


class SessionLifecycleManager:
    """Creates and closes Session rows for realtime channels."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    async def open_session(
        self,
        channel_id: str,
        user_agent: str | None,
        ip_address: str | None,
    ) -> str | None:
        """Record a new active session; None means tracking is degraded."""
        session_id = generate_session_id()
        device = parse_user_agent(user_agent)

        result = await self.store.create(
            session_id=session_id,
            socket_id=channel_id,
            user_agent=device.user_agent,
            ip_address=ip_address,
            platform=device.platform,
            browser=device.browser,
            mobile=device.mobile,
            connection_time=utc_now_naive(),
        )
        if not result.ok:
            logger.warning(
                f"Session not created for {channel_id}: {result.error}",
                extra={"event_type": "session_degraded"},
            )
            return None

        logger.info(
            f"New user session created: {session_id}",
            extra={
                "event_type": "session_opened",
                "platform": device.platform,
                "browser": device.browser,
                "mobile": device.mobile,
            },
        )
        return session_id

    async def close_session(self, channel_id: str) -> str | None:
        """Close the channel's active session; no-op if there is none."""
        found = await self.store.find_active(channel_id)
        if not found.ok:
            logger.warning(
                f"Session close skipped for {channel_id}: {found.error}",
                extra={"event_type": "session_degraded"},
            )
            return None
        if found.value is None:
            return None

        return await self._close(found.value)

    async def _close(self, session: Session) -> str | None:
        disconnection_time = utc_now_naive()
        duration = max(
            0,
            math.floor((disconnection_time - session.connection_time).total_seconds()),
        )

        result = await self.store.mark_closed(session.session_id, disconnection_time, duration)
        if not result.ok:
            logger.warning(
                f"Session {session.session_id} not closed: {result.error}",
                extra={"event_type": "session_degraded"},
            )
            return None
        if not result.value:
            return None

        logger.info(
            f"User session ended: {session.session_id} ({duration}s)",
            extra={"event_type": "session_closed", "duration_seconds": duration},
        )
        return session.session_id

    async def close_orphaned_sessions(self) -> int:
        """Close sessions left active by a previous process.

        The connection registry does not survive a restart, so no channel can
        ever close these.
        """
        found = await self.store.list_active()
        if not found.ok:
            return 0

        closed = 0
        for session in found.value or []:
            if await self._close(session) is not None:
                closed += 1

        if closed:
            logger.info(f"Closed {closed} orphaned sessions", extra={"event_type": "session_sweep"})
        return closed
