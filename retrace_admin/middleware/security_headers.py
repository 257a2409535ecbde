"""
Security Headers Middleware

Adds a fixed set of security headers to every admin API response:
X-Frame-Options, X-Content-Type-Options, Content-Security-Policy and
Referrer-Policy always; Strict-Transport-Security when enabled (everywhere
except local development). Responses under /auth/ also get
``Cache-Control: no-store`` since they carry session cookies and lockout state.
"""

from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, Response

NO_STORE_PREFIX = "/auth/"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    DEFAULT_CSP = "default-src 'none'; frame-ancestors 'none'"
    HSTS_VALUE = "max-age=31536000; includeSubDomains"

    def __init__(self, app, enable_hsts: bool = False, csp: str = DEFAULT_CSP):
        super().__init__(app)
        self.enable_hsts = enable_hsts
        self.csp = csp
        self.static_headers = self._build_headers()

    def _build_headers(self) -> Dict[str, str]:
        headers = {
            "X-Frame-Options": "DENY",
            "X-Content-Type-Options": "nosniff",
            "Content-Security-Policy": self.csp,
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
        if self.enable_hsts:
            headers["Strict-Transport-Security"] = self.HSTS_VALUE
        return headers

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(self.static_headers)
        if request.url.path.startswith(NO_STORE_PREFIX):
            response.headers["Cache-Control"] = "no-store"
        return response
