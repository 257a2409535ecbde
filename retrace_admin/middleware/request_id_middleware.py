"""
Request ID Middleware for request tracing.

Each request gets an id (the caller's X-Request-ID when it is short enough,
otherwise a fresh UUID4) and a rate-limit client key. Both are placed in the
logging context for the duration of the request, the id is echoed back in
the X-Request-ID response header, and one log line is written when the
request starts and one when it finishes or fails.

Usage in main.py:
    from retrace_admin.middleware.request_id_middleware import RequestIdMiddleware
    app.add_middleware(RequestIdMiddleware)  # Add LAST so it runs FIRST
"""

import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from retrace_admin.services.client_identifier import client_key_from_request
from retrace_admin.utils.structured_logger import (
    clear_client_key,
    clear_request_id,
    get_logger,
    set_client_key,
    set_request_id,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(incoming: Optional[str]) -> str:
    """Keep a caller-supplied id unless it is missing or oversized."""
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH:
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_id(request_id)
        set_client_key(client_key_from_request(request))

        route = {"method": request.method, "path": request.url.path}
        logger.info(
            "Request started",
            extra={**route, "user_agent": request.headers.get("User-Agent", "")[:100]},
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed with exception",
                extra={**route, "duration_ms": self._elapsed_ms(started), "error_type": type(e).__name__},
                exc_info=True,
            )
            raise
        else:
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "Request completed",
                extra={**route, "status_code": response.status_code, "duration_ms": self._elapsed_ms(started)},
            )
            return response
        finally:
            clear_request_id()
            clear_client_key()

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 2)
