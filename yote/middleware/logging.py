"""
Yote — Access Log Middleware
=============================

What:  One log line per API call on the "yote.access" logger.

    GET /api/tasks/by-_flow/f1 200 4.2ms user=3f2a... [a1b2c3d4]
    GET /api/tasks/by-_id-list?_id=a&_id=b 200 3.0ms user=- [9c0d1e2f]

Level follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
The query string is kept because by-ref-list and search requests carry
their filters there. /health is not logged. Bodies are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from yote.config import settings
from yote.middleware.request_id import request_id_var

logger = logging.getLogger("yote.access")

SKIPPED_PATHS = frozenset({"/health"})


def status_log_level(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        user_id = request.headers.get(settings.user_id_header) or "-"

        logger.log(
            status_log_level(response.status_code),
            "%s %s %d %.1fms user=%s [%s]",
            request.method,
            target,
            response.status_code,
            duration_ms,
            user_id,
            request_id_var.get(""),
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
            },
        )
        return response
