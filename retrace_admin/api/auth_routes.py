"""
Authentication API Routes

Endpoints for the admin login gate:
- POST /auth/login        password login, rate limited per client, sets the session cookie
- GET  /auth/check        session cookie presence check
- POST /auth/logout       clears the session cookie
- GET  /auth/token-check  bearer token check for machine-to-machine callers
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from retrace_admin.api.dependencies import (
    get_attempt_tracker,
    get_credential_verifier,
    get_session_issuer,
    require_bearer_auth,
)
from retrace_admin.services.attempt_tracker import AttemptTracker
from retrace_admin.services.client_identifier import client_key_from_request
from retrace_admin.services.credential_verifier import CredentialVerifier
from retrace_admin.services.session_issuer import SessionIssuer
from retrace_admin.utils.error_handler import MalformedRequest, RateLimited, Unauthenticated
from retrace_admin.utils.response_models import (
    ErrorResponse,
    LoginFailure,
    LoginRequest,
    LoginSuccess,
    SessionStatus,
    success_response,
)
from retrace_admin.utils.route_logger import RouteLogger

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])


# ==================== Login ====================

@auth_router.post(
    "/login",
    response_model=LoginSuccess,
    responses={
        400: {"model": LoginFailure},
        401: {"model": LoginFailure},
        429: {"model": LoginFailure},
        500: {"model": LoginFailure},
    },
)
async def login(
    request: Request,
    tracker: AttemptTracker = Depends(get_attempt_tracker),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
    sessions: SessionIssuer = Depends(get_session_issuer),
):
    """
    Authenticate the admin with the shared password.

    Locked-out clients are rejected before the body is read. Only completed
    credential checks count toward the lockout: malformed bodies and server
    misconfiguration do not.
    """
    route_log = RouteLogger("auth.login.POST", request)
    route_log.start()

    client_key = client_key_from_request(request)

    admission = tracker.check_admission(client_key)
    if not admission.allowed:
        retry_after = tracker.retry_after_seconds(admission)
        route_log.warn("rate_limited", status=429, retry_after=retry_after)
        raise RateLimited(retry_after)

    try:
        payload = await request.json()
    except ValueError:
        route_log.warn("invalid_json", status=400)
        raise MalformedRequest("Password is required")

    try:
        login_data = LoginRequest.model_validate(payload)
    except ValidationError:
        route_log.warn("password_missing", status=400)
        raise MalformedRequest("Password is required")

    # Raises ConfigurationError when ADMIN_PASSWORD_HASH is unset
    is_valid = verifier.verify(login_data.password)

    tracker.record_outcome(client_key, is_valid)

    if not is_valid:
        remaining = max(0, admission.remaining_attempts - 1)
        route_log.warn("invalid_password", status=401, remaining_attempts=remaining)
        raise Unauthenticated("Invalid password", remainingAttempts=remaining)

    response = JSONResponse(content=success_response())
    sessions.issue(response)

    route_log.success(status=200, secure_cookie=sessions.secure)
    return response


# ==================== Session ====================

@auth_router.get("/check", response_model=SessionStatus, responses={401: {"model": SessionStatus}})
async def check_session(
    request: Request,
    sessions: SessionIssuer = Depends(get_session_issuer),
):
    """
    Report whether the browser holds an admin session cookie.

    Existence only: the cookie value is not validated against a store.
    """
    if sessions.has_session(request):
        return SessionStatus(authenticated=True)

    return JSONResponse(status_code=401, content=SessionStatus(authenticated=False).model_dump())


@auth_router.post("/logout")
async def logout(
    request: Request,
    sessions: SessionIssuer = Depends(get_session_issuer),
):
    """Clear the admin session cookie."""
    route_log = RouteLogger("auth.logout.POST", request)
    route_log.start()

    response = JSONResponse(content=success_response())
    sessions.clear(response)

    route_log.success(status=200)
    return response


# ==================== Bearer Token Check ====================

@auth_router.get(
    "/token-check",
    dependencies=[Depends(require_bearer_auth)],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def token_check(request: Request):
    """
    Verify the caller's bearer token.

    Administrative API routes declare the same require_bearer_auth dependency.
    """
    route_log = RouteLogger("auth.token-check.GET", request)
    route_log.start()
    route_log.success(status=200)
    return success_response()
