"""
Shared FastAPI dependencies.

The gate components are built once by main.create_app() and kept on
app.state; routes receive them through these dependencies so tests can swap
in their own instances.
"""

from fastapi import Depends, Header, Request

from config.loader import GateConfig
from retrace_admin.services.attempt_tracker import AttemptTracker
from retrace_admin.services.bearer_auth import BearerAuthorizer
from retrace_admin.services.credential_verifier import CredentialVerifier
from retrace_admin.services.session_issuer import SessionIssuer
from retrace_admin.utils.error_handler import ConfigurationError, Unauthenticated
from retrace_admin.utils.route_logger import RouteLogger, route_id_for


# 401 bodies are identical for missing and wrong tokens
UNAUTHORIZED_DETAILS = "Missing or invalid bearer token."


def get_gate_config(request: Request) -> GateConfig:
    return request.app.state.config


def get_attempt_tracker(request: Request) -> AttemptTracker:
    return request.app.state.attempt_tracker


def get_credential_verifier(config: GateConfig = Depends(get_gate_config)) -> CredentialVerifier:
    return CredentialVerifier(config.admin_password_hash)


def get_session_issuer(config: GateConfig = Depends(get_gate_config)) -> SessionIssuer:
    return SessionIssuer.from_config(config)


def get_bearer_authorizer(config: GateConfig = Depends(get_gate_config)) -> BearerAuthorizer:
    return BearerAuthorizer(config.bearer_token)


def require_bearer_auth(
    request: Request,
    authorization: str = Header(None),
    authorizer: BearerAuthorizer = Depends(get_bearer_authorizer),
) -> bool:
    """
    FastAPI dependency guarding administrative API routes.

    Declare it on the route (or the router) so it runs before the handler
    body does any work:

        @router.get("/feedback", dependencies=[Depends(require_bearer_auth)])
        async def list_feedback():
            ...
    """
    result = authorizer.authorize(authorization)
    if result.ok:
        return True

    RouteLogger(route_id_for(request), request).warn("auth_failed", status=result.status, reason=result.reason)

    if result.status == 500:
        raise ConfigurationError(details=result.reason, success=False)

    raise Unauthenticated("Unauthorized", details=UNAUTHORIZED_DETAILS, success=False)
