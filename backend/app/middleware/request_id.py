"""
TaskManager Backend — Request ID Middleware
===========================================

What:  Assigns a correlation ID to each incoming request and echoes it back.
Why:   Every log line of a request, and the `request_id` field of every
       error response, share the same ID, so one failed delete or restore
       can be traced through the cascade and inventory logs.
How:   Uses the client's X-Request-ID header when it is a plausible trace
       token, otherwise a short UUID. Stored in a ContextVar
       (coroutine-local) and in request.state.
When:  First middleware in the chain.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Echoed into every error body and access log line
MAX_REQUEST_ID_LENGTH = 64


def accept_request_id(value: Optional[str]) -> Optional[str]:
    if not value or len(value) > MAX_REQUEST_ID_LENGTH:
        return None
    if not all((ch.isascii() and ch.isalnum()) or ch in "-_.:" for ch in value):
        return None
    return value


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Take X-Request-ID from the client if sent and acceptable
           (at most 64 characters of [A-Za-z0-9-_.:])
        2. Otherwise generate an 8-character ID
        3. Store it in request_id_var and request.state.request_id
        4. Return it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = accept_request_id(request.headers.get("X-Request-ID")) or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
