"""
Shared test helpers and constants.
"""

import hashlib

PASSWORD = "correct horse battery staple"
PASSWORD_HASH = hashlib.sha256(PASSWORD.encode("utf-8")).hexdigest()
BEARER_TOKEN = "test-bearer-token-0123456789"

START_TIME = 1_700_000_000.0


class FakeClock:
    """Callable epoch clock advanced manually by tests."""

    def __init__(self, start: float = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_config_dict(
    environment: str = "development",
    admin_password_hash: str = PASSWORD_HASH,
    bearer_token: str = BEARER_TOKEN,
    max_attempts: int = 5,
    attempt_window_seconds: int = 300,
    lockout_seconds: int = 900,
    retry_after_fallback_seconds: int = 60,
    cookie_name: str = "admin_session",
    max_age_seconds: int = 86400,
    redis_url: str = None,
) -> dict:
    """Gate configuration as parsed from gate.yaml, with overrides."""
    return {
        "environment": environment,
        "secrets": {
            "admin_password_hash": admin_password_hash,
            "bearer_token": bearer_token,
        },
        "login_throttle": {
            "max_attempts": max_attempts,
            "attempt_window_seconds": attempt_window_seconds,
            "lockout_seconds": lockout_seconds,
            "retry_after_fallback_seconds": retry_after_fallback_seconds,
        },
        "session": {
            "cookie_name": cookie_name,
            "max_age_seconds": max_age_seconds,
        },
        "attempt_store": {
            "redis_url": redis_url,
        },
    }
