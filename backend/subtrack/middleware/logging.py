"""
SubTrack Backend: Access Log Middleware
=========================================

What:  One `subtrack.access` line per request: method, path, status,
       duration, response size, request ID and client IP.
When:  Runs inside RequestIDMiddleware, so the ID is already set.

Never logged: request bodies (invoice analyses carry billing data), query
strings (CSV export sends the whole file in `data`), Authorization headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from subtrack.middleware.request_id import request_id_var

logger = logging.getLogger("subtrack.access")

# Probed every few seconds by load balancers and uptime checks
QUIET_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        size = response.headers.get("content-length", "-")

        logger.log(
            level_for_status(response.status_code),
            "%s %s %d %.1fms %sB [%s] from %s",
            request.method,
            path,
            response.status_code,
            elapsed_ms,
            size,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
