"""
Test Configuration and Fixtures

Central configuration for pytest including:
- A controllable clock for lockout/window arithmetic
- Gate configuration factories (no YAML file or environment needed)
- App / TestClient factories with an injected attempt tracker

Usage:
    All fixtures defined here are automatically available to all tests.
    Import constants and helpers from tests.utils.
"""

import pytest
import os
import sys

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

# Import the app module up front: it configures root logging on import
import main  # noqa: F401
from main import create_app
from config.loader import GateConfig, clear_config_cache
from retrace_admin.services.attempt_tracker import AttemptTracker, InMemoryAttemptStore
from tests.utils import FakeClock, BEARER_TOKEN, PASSWORD_HASH, make_config_dict


# ==================== Clock ====================

@pytest.fixture
def clock():
    """Fake epoch clock starting at a fixed instant."""
    return FakeClock()


# ==================== Configuration Fixtures ====================

@pytest.fixture
def make_config():
    """Factory building GateConfig objects from overrides.

    Usage:
        config = make_config(bearer_token=None, environment="production")
    """
    def _make(**overrides):
        return GateConfig(config=make_config_dict(**overrides))
    return _make


@pytest.fixture
def gate_config(make_config):
    """Local-environment config with both secrets set."""
    return make_config()


@pytest.fixture(autouse=True)
def reset_config_cache():
    clear_config_cache()
    yield
    clear_config_cache()


# ==================== Tracker Fixtures ====================

@pytest.fixture
def store():
    return InMemoryAttemptStore()


@pytest.fixture
def tracker(store, clock):
    """Tracker with the default policy (5 attempts / 5 min window / 15 min lockout)."""
    return AttemptTracker(store=store, clock=clock)


# ==================== App Fixtures ====================

@pytest.fixture
def make_client(clock):
    """Factory returning (TestClient, tracker) for an app built from overrides."""
    def _make(tracker=None, **config_overrides):
        config = GateConfig(config=make_config_dict(**config_overrides))
        tracker = tracker or AttemptTracker.from_config(config, store=InMemoryAttemptStore(), clock=clock)
        app = create_app(config=config, tracker=tracker)
        return TestClient(app, raise_server_exceptions=False), tracker
    return _make


@pytest.fixture
def client(make_client):
    test_client, _ = make_client()
    return test_client


@pytest.fixture
def bearer_headers():
    return {"Authorization": f"Bearer {BEARER_TOKEN}"}


@pytest.fixture
def expected_hash():
    return PASSWORD_HASH
