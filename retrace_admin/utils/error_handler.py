"""
Error Handler Utility - Admin gate error taxonomy and JSON rendering

Every failure of the admin gate is raised as an AdminGateError subclass and
rendered by a single FastAPI exception handler:

- ConfigurationError (500): a required secret is not configured. Always the
  server's fault, never attributed to the caller.
- RateLimited (429): too many failed logins; carries retry_after and sets the
  Retry-After header.
- Unauthenticated (401): missing or invalid credential.
- MalformedRequest (400): the caller must fix the payload.

Security: payloads and log lines never contain passwords, hashes or tokens.
Unexpected exceptions are logged with traceback and answered with a generic
500 body.

Usage:
    from retrace_admin.utils.error_handler import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from retrace_admin.utils.response_models import error_response
from retrace_admin.utils.route_logger import RouteLogger, route_id_for


class AdminGateError(Exception):
    """Base class for errors answered directly to the caller."""

    status_code = 500
    default_error = "Internal server error"

    def __init__(
        self,
        error: Optional[str] = None,
        details: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **fields: Any
    ):
        self.error = error or self.default_error
        self.details = details
        self.headers = headers or {}
        self.fields = fields
        super().__init__(self.error)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = dict(self.fields)
        body["error"] = self.error
        if self.details:
            body["details"] = self.details
        return body


class ConfigurationError(AdminGateError):
    status_code = 500
    default_error = "Server configuration error"


class RateLimited(AdminGateError):
    status_code = 429
    default_error = "Too many login attempts. Please try again later."

    def __init__(self, retry_after: int, error: Optional[str] = None):
        super().__init__(
            error,
            headers={"Retry-After": str(retry_after)},
            retryAfter=retry_after,
        )
        self.retry_after = retry_after


class Unauthenticated(AdminGateError):
    status_code = 401
    default_error = "Unauthorized"


class MalformedRequest(AdminGateError):
    status_code = 400
    default_error = "Invalid request"


async def admin_gate_error_handler(request: Request, exc: AdminGateError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers or None,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the full exception; answer with a body that exposes nothing internal."""
    RouteLogger(route_id_for(request), request).error("unhandled_exception", exc)
    return JSONResponse(
        status_code=500,
        content=error_response("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AdminGateError, admin_gate_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
