"""API middleware."""

from lightning_tracker.api.middleware.request_logging import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
]
