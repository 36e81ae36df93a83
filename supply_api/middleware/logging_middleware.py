"""
Access log for the supply API.

One line per request, tagged with a request id and the caller's rate-limit
identity. Health checks are logged at DEBUG so they do not drown the log.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .rate_limit import client_identifier

logger = structlog.stdlib.get_logger("supply_api.access")

REQUEST_ID_HEADER = "x-request-id"
QUIET_PATHS = frozenset({"/healthz"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        client = client_identifier(request)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, client=client)

        started = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            fields = {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code if response is not None else 500,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            }
            if response is not None and "X-RateLimit-Remaining" in response.headers:
                fields["rate_remaining"] = response.headers["X-RateLimit-Remaining"]

            if request.url.path in QUIET_PATHS:
                logger.debug("request", **fields)
            elif fields["status"] >= 500:
                logger.error("request", **fields)
            elif fields["status"] == 429:
                logger.warning("request_throttled", **fields)
            else:
                logger.info("request", **fields)
