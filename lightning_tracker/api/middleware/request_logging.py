"""Request logging middleware with request ID tracking.

Only HTTP requests pass through here; the realtime channel tags its own
log lines with the socket ID.
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from lightning_tracker.core.logging import (
    clear_request_id,
    get_logger,
    log_error,
    set_request_id,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Polled by load balancers; logged at DEBUG to keep INFO readable
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each HTTP request with timing and propagate a request ID."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_request_id(request_id)

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            log_error(
                logger,
                f"Request failed: {method} {path}",
                error=e,
                extra={
                    "event_type": "request_failed",
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "client_ip": client_ip,
                },
            )
            raise
        else:
            logger.log(
                logging.DEBUG if path in QUIET_PATHS else logging.INFO,
                f"{method} {path} - {response.status_code}",
                extra={
                    "event_type": "request_completed",
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "client_ip": client_ip,
                },
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_id()
