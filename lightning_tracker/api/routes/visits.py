"""Visit tracking beacon endpoint."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from lightning_tracker.api.deps import client_address, get_tracking_service
from lightning_tracker.api.schemas import VisitResponse, parse_visit_payload
from lightning_tracker.core.datetime_utils import isoformat_z, utc_now
from lightning_tracker.services.tracking import TrackingService

router = APIRouter()


@router.post("/track", response_model=VisitResponse)
async def track_visit(
    request: Request,
    tracking: TrackingService = Depends(get_tracking_service),
) -> VisitResponse:
    """Log a page visit from request headers and the optional JSON body."""
    details = parse_visit_payload(await request.body())

    visit = await tracking.visits.record_visit(
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
        host=request.headers.get("host"),
        ip_address=client_address(request),
        page=details.page,
        visitor_id=details.session_id,
        country=details.country,
        city=details.city,
        viewport=details.viewport,
        timezone=details.timezone,
        language=details.language,
    )
    if visit is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to log visit",
        )

    return VisitResponse(
        success=True,
        visitId=str(visit.id),
        message="Visit logged successfully",
        timestamp=isoformat_z(utc_now()),
    )
