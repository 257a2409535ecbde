"""
Admin password verification.

The expected password is configured as the sha256 hex digest in
ADMIN_PASSWORD_HASH. The submitted password is hashed the same way and the two
digests are compared in constant time.
"""

import hashlib
import hmac
from typing import Optional

from retrace_admin.utils.error_handler import ConfigurationError
from retrace_admin.utils.structured_logger import get_logger

logger = get_logger(__name__)


def hash_password(password: str) -> str:
    """sha256 hex digest of the UTF-8 encoded password"""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def timing_safe_equal(provided: str, expected: str) -> bool:
    """Constant-time string comparison.

    Unequal byte lengths return False immediately. Equal-length inputs are
    compared with hmac.compare_digest, whose running time does not depend on
    the position of the first differing byte.
    """
    provided_bytes = provided.encode("utf-8")
    expected_bytes = expected.encode("utf-8")

    if len(provided_bytes) != len(expected_bytes):
        return False

    return hmac.compare_digest(provided_bytes, expected_bytes)


class CredentialVerifier:
    """Checks a submitted admin password against the configured hash."""

    def __init__(self, expected_hash: Optional[str]):
        self.expected_hash = expected_hash

    @property
    def is_configured(self) -> bool:
        return bool(self.expected_hash)

    def verify(self, provided_password: str) -> bool:
        """Return True when the password matches.

        Raises:
            ConfigurationError: no expected hash is configured. This is a
                server fault and must not be reported as a wrong password.
        """
        if not self.expected_hash:
            logger.error("ADMIN_PASSWORD_HASH environment variable not set")
            raise ConfigurationError()

        return timing_safe_equal(hash_password(provided_password), self.expected_hash)
