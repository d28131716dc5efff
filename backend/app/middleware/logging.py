"""
TaskManager Backend — Request Logging Middleware
================================================

What:  One access log line per HTTP request, tagged with the lifecycle
       operation it ran and the tenant it ran for.
Why:   Delete/restore requests can fan out over large subtrees; duration per
       request is the first signal when a cascade gets slow, and the tenant
       tag tells which department's data was touched.
How:   Measures wall time around the downstream handler and logs through the
       "taskmanager.access" logger at a level chosen by status class.
When:  After RequestIDMiddleware (uses the request ID for correlation).

Line format:
    DELETE /api/tasks/<id> 200 12.3ms [a1b2c3d4] op=tasks.delete
        tenant=<org>/<dept> actor=<id|anonymous> from 10.0.0.7

    op      "<resource>.<delete|restore>" for lifecycle routes, "-" otherwise
    tenant  "missing" when either scope header is absent (the route
            answers 422 before any transaction starts)

What we DON'T log: request bodies, comment text.
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("taskmanager.access")

API_PREFIX = "/api/"


def lifecycle_operation(method: str, path: str) -> Optional[str]:
    """`tasks.delete` for DELETE /api/tasks/<id>, `tasks.restore` for POST .../restore."""
    if not path.startswith(API_PREFIX):
        return None
    parts = path[len(API_PREFIX):].strip("/").split("/")
    if method == "DELETE" and len(parts) == 2:
        return f"{parts[0]}.delete"
    if method == "POST" and len(parts) == 3 and parts[2] == "restore":
        return f"{parts[0]}.restore"
    return None


def tenant_label(request: Request) -> str:
    organization_id = request.headers.get("X-Organization-ID")
    department_id = request.headers.get("X-Department-ID")
    if not organization_id or not department_id:
        return "missing"
    return f"{organization_id}/{department_id}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request after the response is produced.

    Level by status class:
        5xx → ERROR, 4xx → WARNING, everything else → INFO
    /health is skipped (polled every few seconds).
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        operation = lifecycle_operation(request.method, path)
        tenant = tenant_label(request)
        actor = request.headers.get("X-Actor-ID") or "anonymous"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] op=%s tenant=%s actor=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            operation or "-",
            tenant,
            actor,
            client_ip,
            extra={
                "request_id": rid,
                "operation": operation,
                "tenant": tenant,
                "actor": actor,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
