"""
Configuration Loader - Loads and validates the admin gate configuration

Usage:
    from config.loader import get_config

    config = get_config()
    print(config.max_attempts)
    print(config.is_local)

The YAML file (config/gate.yaml, or the path in GATE_CONFIG_PATH) holds the
login throttle policy and session cookie settings. Secrets are never written
to the file; it references them as ${ADMIN_PASSWORD_HASH} / ${BEARER_TOKEN}
and they are substituted from the environment at load time.
"""

import yaml
import json
import os
import re
import copy
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from jsonschema import validate, ValidationError

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "gate.yaml"
SCHEMA_PATH = CONFIG_DIR / "schema.json"

# Environments in which the session cookie is sent without the Secure flag
LOCAL_ENVIRONMENTS = {"development", "local"}


class GateConfig:
    """Load and validate the admin gate configuration from YAML or a dict"""

    def __init__(self, config: Optional[Dict[str, Any]] = None, config_path: Optional[str] = None):
        """
        Initialize gate configuration

        Args:
            config: Already-parsed configuration (skips the YAML file). Env
                    placeholders inside it are still substituted.
            config_path: YAML file to load (defaults to GATE_CONFIG_PATH or
                         config/gate.yaml)
        """
        if config is not None:
            self.config_path = None
            self.config = self._substitute_env_vars(copy.deepcopy(config))
        else:
            path = config_path or os.getenv("GATE_CONFIG_PATH") or DEFAULT_CONFIG_PATH
            self.config_path = Path(path)
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
            self.config = self._load_config()

        self._validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load YAML configuration file"""
        with open(self.config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        return self._substitute_env_vars(config)

    def _substitute_env_vars(self, obj: Any) -> Any:
        """
        Recursively substitute environment variables in config

        Supports: ${VAR_NAME} or ${VAR_NAME:-default_value}
        """
        if isinstance(obj, dict):
            return {k: self._substitute_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            # Match ${VAR} or ${VAR:-default}
            pattern = r'\$\{([A-Z_]+)(?::-([^}]+))?\}'

            def replacer(match):
                var_name = match.group(1)
                default = match.group(2)
                return os.getenv(var_name, default or '')

            return re.sub(pattern, replacer, obj)
        else:
            return obj

    def _validate_config(self):
        """Validate configuration against JSON schema"""
        if not SCHEMA_PATH.exists():
            logger.warning(f"Schema file not found: {SCHEMA_PATH}, skipping validation")
            return

        with open(SCHEMA_PATH, 'r') as f:
            schema = json.load(f)

        try:
            validate(instance=self.config, schema=schema)
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e.message}")

    @staticmethod
    def _secret(value: Optional[str]) -> Optional[str]:
        """Trim a secret; blank values count as not configured."""
        if not value:
            return None
        trimmed = str(value).strip()
        return trimmed or None

    # ==================== Environment ====================

    @property
    def environment(self) -> str:
        """Deployment environment name"""
        return self.config['environment'].strip().lower()

    @property
    def is_local(self) -> bool:
        """True for local development (session cookie is not marked Secure)"""
        return self.environment in LOCAL_ENVIRONMENTS

    # ==================== Secrets ====================

    @property
    def admin_password_hash(self) -> Optional[str]:
        """Expected sha256 hex digest of the admin password"""
        value = self._secret(self.config.get('secrets', {}).get('admin_password_hash'))
        return value.lower() if value else None

    @property
    def bearer_token(self) -> Optional[str]:
        """Static bearer secret for administrative API routes"""
        return self._secret(self.config.get('secrets', {}).get('bearer_token'))

    # ==================== Login Throttle ====================

    @property
    def max_attempts(self) -> int:
        """Failed logins allowed inside the attempt window before lockout"""
        return int(self.config['login_throttle']['max_attempts'])

    @property
    def attempt_window_seconds(self) -> float:
        return float(self.config['login_throttle']['attempt_window_seconds'])

    @property
    def lockout_seconds(self) -> float:
        return float(self.config['login_throttle']['lockout_seconds'])

    @property
    def retry_after_fallback_seconds(self) -> int:
        """Retry-After sent when a denial carries no lockout timestamp"""
        return int(self.config['login_throttle'].get('retry_after_fallback_seconds', 60))

    # ==================== Session ====================

    @property
    def session_cookie_name(self) -> str:
        return self.config['session']['cookie_name']

    @property
    def session_max_age_seconds(self) -> int:
        return int(self.config['session']['max_age_seconds'])

    # ==================== Attempt Store ====================

    @property
    def redis_url(self) -> Optional[str]:
        """Redis URL for a shared attempt store (None keeps state in memory)"""
        return self._secret(self.config.get('attempt_store', {}).get('redis_url'))

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary with secrets masked"""
        data = copy.deepcopy(self.config)
        for key, value in data.get('secrets', {}).items():
            data['secrets'][key] = '***' if value else value
        return data

    def __repr__(self) -> str:
        return f"GateConfig(environment='{self.environment}', source='{self.config_path or 'dict'}')"


# Singleton pattern for easy access
_config_cache: Dict[str, GateConfig] = {}


def clear_config_cache():
    """Clear the config cache so the next get_config() re-reads file and environment."""
    _config_cache.clear()


def get_config() -> GateConfig:
    """
    Get or create the gate configuration (cached)

    Returns:
        GateConfig instance
    """
    if 'gate' not in _config_cache:
        _config_cache['gate'] = GateConfig()
    return _config_cache['gate']
