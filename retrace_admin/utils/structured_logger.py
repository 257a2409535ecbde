"""
Structured logging for the admin gate.

Every entry carries the current request id and the rate-limit client key,
both held in contextvars that RequestIdMiddleware sets per request. Fields
passed through ``extra={}`` are attached to the entry; any whose name looks
credential-bearing (password, token, secret, hash, cookie, authorization) is
replaced with ``[REDACTED]`` before it reaches a handler's output.

Usage:
    from retrace_admin.utils.structured_logger import setup_structured_logging, get_logger

    setup_structured_logging(json_output=False)
    logger = get_logger(__name__)
    logger.warning("Admin login lockout triggered", extra={"failed_attempts": 5})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
client_key_var: ContextVar[Optional[str]] = ContextVar("client_key", default=None)

REDACTED = "[REDACTED]"

SENSITIVE_FIELD_MARKERS = ("password", "token", "secret", "hash", "cookie", "authorization")

# Attributes every LogRecord has; anything else came in through extra={}
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Third-party loggers kept quieter than the root level
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.INFO,
    "httpx": logging.WARNING,
}


# ==================== Request Context ====================

def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def clear_request_id() -> None:
    request_id_var.set(None)


def set_client_key(client_key: str) -> None:
    client_key_var.set(client_key)


def get_client_key() -> Optional[str]:
    return client_key_var.get()


def clear_client_key() -> None:
    client_key_var.set(None)


def current_context() -> Dict[str, Optional[str]]:
    """Snapshot of the per-request logging context."""
    return {"request_id": request_id_var.get(), "client_key": client_key_var.get()}


# ==================== Redaction ====================

def is_sensitive_field(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in SENSITIVE_FIELD_MARKERS)


def _loggable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def extract_extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Fields passed through extra={}, with credential-bearing ones redacted."""
    return {
        key: REDACTED if is_sensitive_field(key) else _loggable(value)
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


# ==================== Formatters ====================

class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    {"timestamp": "...Z", "level": "WARNING", "logger": "retrace_admin.services.attempt_tracker",
     "message": "Admin login lockout triggered", "request_id": "...", "client_key": "1.2.3.4",
     "service": "retrace-admin", "source": {...}, "extra": {...}, "exception": {...}}
    """

    def __init__(self, service_name: str = "retrace-admin"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **current_context(),
            "service": self.service_name,
            "source": {"file": record.filename, "line": record.lineno, "function": record.funcName},
        }

        extra = extract_extra_fields(record)
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=str)


class PlainFormatter(logging.Formatter):
    """Human-readable lines for local development.

    2026-01-21 15:30:00 - retrace_admin.routes - INFO - [request-id] message {"extra": ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        request_id = get_request_id()
        parts = [
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            record.name,
            record.levelname,
            (f"[{request_id}] " if request_id else "") + record.getMessage(),
        ]
        line = " - ".join(parts)

        extra = extract_extra_fields(record)
        if extra:
            line = f"{line} {json.dumps(extra, default=str)}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


# ==================== Setup ====================

def setup_structured_logging(
    level: str = "INFO",
    json_output: bool = True,
    service_name: str = "retrace-admin"
) -> None:
    """Replace the root handlers with a single stdout handler.

    Args:
        level: Root level name; unknown names fall back to INFO
        json_output: JSON lines when True, PlainFormatter otherwise
        service_name: Value of the "service" field in JSON entries
    """
    formatter = JSONFormatter(service_name=service_name) if json_output else PlainFormatter()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
