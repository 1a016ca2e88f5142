"""FastAPI middleware for promreader API.

- ``RequestIDMiddleware`` gives every request an ID and binds it to the
  logging context
- ``LoggingMiddleware`` logs one line per served request
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from promreader.logging_config import bind_request_context, clear_request_context

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def content_length(request: Request) -> int | None:
    """Declared body size, or None when the header is absent or malformed."""
    try:
        return int(request.headers["content-length"])
    except (KeyError, ValueError):
        return None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID.

    An incoming X-Request-ID header is reused, otherwise a UUID is generated.
    The ID is stored in ``request.state.request_id``, bound to the structlog
    context for the duration of the request and echoed in the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER.lower()) or str(uuid4())
        request.state.request_id = request_id
        bind_request_context(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status, body size and duration of every request.

    Health probes and metric scrapes are logged at debug level so that
    Prometheus' own polling does not drown out read traffic.
    """

    QUIET_PATHS = ("/health", "/metrics")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        fields = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_seconds": round(time.perf_counter() - start_time, 6),
            "request_bytes": content_length(request),
            "client": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }

        if request.url.path.startswith(self.QUIET_PATHS):
            logger.debug("request_completed", **fields)
        else:
            logger.info("request_completed", **fields)

        return response
