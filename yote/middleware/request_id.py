"""
Yote — Request ID Middleware
=============================

What:  Tags every request with a correlation id.

    X-Request-ID in  → reused when it is 1-64 chars of [A-Za-z0-9._-]
    otherwise        → a fresh 8-char hex id
    X-Request-ID out → always set on the response

The id lives in `request_id_var` for the duration of the request. The
exception handlers copy it into error envelopes, and RequestIdLogFilter
stamps it on every log record as `record.request_id`, so cache misses and
store errors logged deep in a service line up with the access log entry.
"""

import logging
import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def accepted_request_id(candidate: str) -> str:
    """The client's id if it is safe to echo into headers and logs, else a new one."""
    if candidate and _VALID_REQUEST_ID.match(candidate):
        return candidate
    return new_request_id()


class RequestIdLogFilter(logging.Filter):
    """Adds `request_id` to records ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = accepted_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
