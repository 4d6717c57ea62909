"""
Ebook Shelf Backend — Request ID Middleware
=============================================

What:  Tags every request with a correlation ID and echoes it in the response.
Why:   Error responses carry `request_id`, so a user report can be matched to
       the exact server log lines of the failed create/update/delete.
How:   Reuses a client-supplied X-Request-ID or generates a short UUID, stores
       it in a ContextVar (read by exception handlers and the access log) and
       on request.state.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a request ID and returns it in the X-Request-ID header."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
