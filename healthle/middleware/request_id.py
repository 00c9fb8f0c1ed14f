"""
Request ID middleware for correlation tracking.

Every request gets a correlation ID:
- taken from the X-Request-ID header when the client (or the portal
  frontend) sends one
- generated as a UUID otherwise

The ID is stored on ``request.state``, published through a context
variable so log lines emitted deep inside repositories and service
clients carry it, and echoed back in the response headers.
"""

import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from healthle.core.logging_config import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add request ID correlation to all requests.

    Example:
        app.add_middleware(RequestIDMiddleware)

    Usage in routes:
        @router.get("/example")
        async def example(request: Request):
            return {"request_id": request.state.request_id}
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
