"""API dependencies."""

from fastapi import Request
from starlette.requests import HTTPConnection

from lightning_tracker.core.websocket import ConnectionRegistry
from lightning_tracker.services.tracking import TrackingService


def get_tracking_service(request: Request) -> TrackingService:
    """Tracking service built at startup."""
    return request.app.state.tracking


def get_registry(request: Request) -> ConnectionRegistry:
    """Process-local registry of open channels."""
    return request.app.state.registry


def client_address(connection: HTTPConnection) -> str | None:
    """First X-Forwarded-For hop, then X-Real-IP, else the peer address."""
    forwarded = connection.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = connection.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return connection.client.host if connection.client else None
