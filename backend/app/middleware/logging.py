"""
Ebook Shelf Backend — Request Logging Middleware
==================================================

What:  One access log line per request: method, path, status, duration, request ID.
Why:   Cover uploads make POST/PUT latency depend on the image host; the
       duration field shows where time goes without a profiler.
How:   Times the downstream call and logs at a level chosen by status class.
When:  Runs inside RequestIDMiddleware so the request ID is already set.

What we log vs what we DON'T log:
    ✅ method, path, status, duration, client IP, request ID
    ❌ request bodies (form fields, image bytes), headers
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("ebookshelf.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each HTTP request after the response is produced.

    Level by status: 5xx → ERROR, 4xx → WARNING, otherwise INFO.
    /health is skipped; monitors hit it every few seconds.
    """

    SKIPPED_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.SKIPPED_PATHS:
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
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
