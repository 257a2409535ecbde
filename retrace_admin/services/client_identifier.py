"""
Client identification for login rate limiting.

The admin site runs behind a reverse proxy, so the socket peer is the proxy
itself. The originating client is taken from the proxy headers instead:

1. First entry of X-Forwarded-For (the original client in the chain)
2. X-Real-IP
3. The sentinel "unknown"

The result is only a partition key for the attempt tracker. A spoofed header
can skew rate limiting for that caller but never bypasses the password check.
"""

from typing import Optional

from starlette.requests import Request

UNKNOWN_CLIENT = "unknown"


def identify_client(forwarded_for: Optional[str], real_ip: Optional[str]) -> str:
    """Derive the client key from X-Forwarded-For / X-Real-IP header values."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    if real_ip and real_ip.strip():
        return real_ip.strip()

    return UNKNOWN_CLIENT


def client_key_from_request(request: Request) -> str:
    return identify_client(
        request.headers.get("X-Forwarded-For"),
        request.headers.get("X-Real-IP"),
    )
