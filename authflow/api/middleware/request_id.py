"""
Request ID middleware for request correlation.

- Accepts X-Request-ID from the client or generates one
- Exposes it on request.state, in the response headers and in every log
  record emitted while the request is handled
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from authflow.logging_config import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 1000


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request ID to each request and time it."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        # Cap client-supplied ids so they cannot bloat log lines
        request_id = incoming[:64] if incoming else str(uuid.uuid4())

        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        try:
            start = time.perf_counter()
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)

            response.headers[REQUEST_ID_HEADER] = request_id

            fields = {
                "path": request.url.path,
                "method": request.method,
                "status": response.status_code,
                "duration_ms": duration_ms,
            }
            if duration_ms > SLOW_REQUEST_MS:
                logger.warning("Slow request", extra=fields)
            else:
                logger.debug("Request handled", extra=fields)

            return response
        finally:
            request_id_var.reset(token)
