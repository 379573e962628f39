"""Page visit logging for the tracking beacon."""

from lightning_tracker.core.datetime_utils import utc_now_naive
from lightning_tracker.core.logging import get_logger
from lightning_tracker.db.models import Visit
from lightning_tracker.db.stores import VisitStore
from lightning_tracker.services.device_info import parse_user_agent
from lightning_tracker.services.sessions import generate_session_id

logger = get_logger(__name__)


def _clip(value: str | None, length: int) -> str | None:
    return value[:length] if value else value


class VisitTracker:
    """Turns a beacon request into a stored Visit."""

    def __init__(self, store: VisitStore) -> None:
        self.store = store

    async def record_visit(
        self,
        *,
        user_agent: str | None,
        referer: str | None,
        host: str | None,
        ip_address: str | None,
        page: str | None = None,
        visitor_id: str | None = None,
        country: str | None = None,
        city: str | None = None,
        viewport: str | None = None,
        timezone: str | None = None,
        language: str | None = None,
    ) -> Visit | None:
        """Store one visit; None when persistence is unavailable."""
        device = parse_user_agent(user_agent)
        visit = Visit(
            visitor_id=_clip(visitor_id, 64) or generate_session_id(),
            ip_address=_clip(ip_address, 64),
            user_agent=device.user_agent,
            referer=_clip(referer, 500) or "Direct",
            host=_clip(host, 255),
            page=_clip(page, 500) or "/",
            browser=device.browser,
            platform=device.platform,
            device_type=device.device_type,
            country=_clip(country, 64),
            city=_clip(city, 128),
            viewport=_clip(viewport, 32),
            timezone=_clip(timezone, 64),
            language=_clip(language, 32),
            timestamp=utc_now_naive(),
        )

        result = await self.store.append(visit)
        if not result.ok:
            logger.warning(
                f"Visit not logged: {result.error}",
                extra={"event_type": "visit_degraded"},
            )
            return None

        logger.info(
            f"User visit logged: {visit.page}",
            extra={"event_type": "visit_logged", "device_type": device.device_type},
        )
        return result.value
