"""
SchoolDesk Backend — Access Log Middleware
============================================

What:  One log line per request: method, path, status, duration, request id,
       and the role of the calling principal.
Why:   Term switches and deletions are rare but consequential; the access log
       shows who (by role) hit which endpoint and how it ended.

Log level follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
Request bodies are never logged (they may contain personal data).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from schooldesk.middleware.request_id import request_id_var

logger = logging.getLogger("schooldesk.access")

# Probes every few seconds would drown the useful lines
QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
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
        role = getattr(request.state, "principal_role", "anonymous")
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] role=%s from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            role,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "principal_role": role,
            },
        )
        return response
