"""
Request ID middleware.

Each request gets a correlation ID (reusing a sane inbound ``X-Request-ID``
from the proxy when present). It is stored in a context variable so the
JSON log formatter can attach it to every record, and echoed back in the
response header.
"""

import re
import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"
_INBOUND_ID_RE = re.compile(r"^[A-Za-z0-9._-]{8,64}$")

request_id_context: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        inbound = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = inbound if _INBOUND_ID_RE.match(inbound) else str(uuid.uuid4())

        token = request_id_context.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_context.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_context.get("")
