"""
Admin session cookie issuance.

On a successful login the browser receives an opaque random token in an
HttpOnly, SameSite=Strict cookie scoped to the whole site. The server keeps no
session table: the cookie's presence is the whole session check, and its
Max-Age bounds its lifetime. Logout overwrites the cookie with an empty value
and Max-Age=0.

This existence-only check is deliberately lightweight. It gates the admin UI
only; every administrative API call is additionally protected by the bearer
token (see bearer_auth.py). Session state does not survive a token leak or
support server-side revocation.
"""

import secrets

from starlette.requests import Request
from starlette.responses import Response

SESSION_COOKIE_NAME = "admin_session"
SESSION_MAX_AGE_SECONDS = 60 * 60 * 24  # 24 hours
SESSION_TOKEN_BYTES = 32  # 256 bits of entropy


def generate_session_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)


class SessionIssuer:
    """Sets, clears and detects the admin session cookie."""

    def __init__(
        self,
        secure: bool,
        cookie_name: str = SESSION_COOKIE_NAME,
        max_age_seconds: int = SESSION_MAX_AGE_SECONDS,
    ):
        self.secure = secure
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds

    @classmethod
    def from_config(cls, config) -> "SessionIssuer":
        return cls(
            secure=not config.is_local,
            cookie_name=config.session_cookie_name,
            max_age_seconds=config.session_max_age_seconds,
        )

    def _set(self, response: Response, value: str, max_age: int) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=value,
            max_age=max_age,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite="strict",
        )

    def issue(self, response: Response) -> str:
        """Attach a fresh session cookie to the response and return its token."""
        token = generate_session_token()
        self._set(response, token, self.max_age_seconds)
        return token

    def clear(self, response: Response) -> None:
        self._set(response, "", 0)

    def has_session(self, request: Request) -> bool:
        return bool(request.cookies.get(self.cookie_name))
