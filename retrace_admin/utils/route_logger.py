"""
Per-route event logging.

Each route handler creates a RouteLogger at entry and reports lifecycle
events through it. Every entry carries the route id, a short trace id and the
elapsed time since the logger was created, so a single request can be followed
through its log lines even without the request-ID middleware.

Usage:
    route_log = RouteLogger("auth.token-check.GET", request)
    route_log.start()
    ...
    route_log.warn("auth_failed", status=401)
    route_log.success(status=200)
"""

import secrets
import time
from typing import Any, Dict, Optional

from starlette.requests import Request

from retrace_admin.services.client_identifier import client_key_from_request
from retrace_admin.utils.structured_logger import get_logger, get_request_id

logger = get_logger("retrace_admin.routes")


def _new_trace_id() -> str:
    return f"{int(time.time() * 1000):x}-{secrets.token_hex(3)}"


def route_id_for(request: Request) -> str:
    """Route id from path and method, e.g. GET /auth/token-check -> auth.token-check.GET"""
    segments = [segment for segment in request.url.path.split("/") if segment]
    return ".".join(segments + [request.method])


def describe_request(request: Request) -> Dict[str, Any]:
    """Request metadata safe to log (no cookies, no Authorization header)."""
    headers = request.headers
    return {
        "method": request.method,
        "path": request.url.path,
        "query": {key: request.query_params.getlist(key) for key in sorted(set(request.query_params.keys()))},
        "content_type": headers.get("content-type"),
        "content_length": headers.get("content-length"),
        "user_agent": (headers.get("user-agent") or "")[:100] or None,
        "origin": headers.get("origin"),
        "referer": headers.get("referer"),
        "client_key": client_key_from_request(request),
    }


class RouteLogger:
    """Structured logger bound to one route invocation."""

    def __init__(self, route_id: str, request: Optional[Request] = None):
        self.route_id = route_id
        self.trace_id = get_request_id() or _new_trace_id()
        self.started_at = time.perf_counter()
        self._request_meta = describe_request(request) if request is not None else {}

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self.started_at) * 1000, 2)

    def _extra(self, event: str, meta: Dict[str, Any], include_elapsed: bool = True) -> Dict[str, Any]:
        extra = {"route_id": self.route_id, "trace_id": self.trace_id, "event": event}
        if include_elapsed:
            extra["elapsed_ms"] = self.elapsed_ms()
        extra.update(meta)
        return extra

    def _message(self, event: str) -> str:
        return f"[api][{self.route_id}][{self.trace_id}] {event}"

    def start(self, **meta: Any) -> None:
        extra = self._extra("start", {**self._request_meta, **meta}, include_elapsed=False)
        logger.info(self._message("start"), extra=extra)

    def warn(self, event: str, **meta: Any) -> None:
        logger.warning(self._message(event), extra=self._extra(event, meta))

    def success(self, **meta: Any) -> None:
        logger.info(self._message("success"), extra=self._extra("success", meta))

    def error(self, event: str, error: BaseException, **meta: Any) -> None:
        meta = {**meta, "error_type": type(error).__name__, "error_message": str(error)[:500]}
        logger.error(self._message(event), extra=self._extra(event, meta), exc_info=error)
