"""
Static bearer-token authorization for administrative API routes.

Machine-to-machine callers (the desktop app's feedback sync, internal
dashboards) present the service-wide secret as

    Authorization: Bearer <BEARER_TOKEN>

The check is stateless and never touches the login attempt tracker.
"""

from typing import NamedTuple, Optional

from retrace_admin.services.credential_verifier import timing_safe_equal

BEARER_PREFIX = "Bearer "

REASON_NOT_CONFIGURED = "Configure BEARER_TOKEN on the server."
REASON_MISSING_TOKEN = "Missing bearer token."
REASON_INVALID_TOKEN = "Invalid bearer token."


class AuthResult(NamedTuple):
    ok: bool
    status: int = 200
    reason: Optional[str] = None


AUTHORIZED = AuthResult(True)


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Token following the literal "Bearer " prefix, or None if absent/blank."""
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return None

    token = auth_header[len(BEARER_PREFIX):].strip()
    return token or None


class BearerAuthorizer:
    """Compares presented bearer tokens with the configured secret."""

    def __init__(self, secret: Optional[str]):
        self.secret = secret.strip() if secret else None

    @property
    def is_configured(self) -> bool:
        return bool(self.secret)

    def authorize(self, auth_header: Optional[str]) -> AuthResult:
        """
        Check an Authorization header value.

        Returns:
            AUTHORIZED, or a failure with status 500 (secret not configured)
            or 401 (token missing, malformed or wrong)
        """
        if not self.secret:
            return AuthResult(False, 500, REASON_NOT_CONFIGURED)

        token = extract_bearer_token(auth_header)
        if token is None:
            return AuthResult(False, 401, REASON_MISSING_TOKEN)

        if not timing_safe_equal(token, self.secret):
            return AuthResult(False, 401, REASON_INVALID_TOKEN)

        return AUTHORIZED
