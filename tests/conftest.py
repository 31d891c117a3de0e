"""Shared fixtures: every test starts from default configuration, an empty
process registry and the default scalar whitelist."""

import pytest
from hypothesis import HealthCheck, settings

from durable_params.config import reset_config
from durable_params.parameters import scalars
from durable_params.registry import SchemaRegistry, get_default_registry

settings.register_profile(
    "durable-params",
    suppress_health_check=[HealthCheck.too_slow],
    deadline=None,
)
settings.load_profile("durable-params")


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    """Reset process-wide state around each test."""
    reset_config()
    get_default_registry().clear()
    monkeypatch.setattr(scalars, "_scalar_types", scalars.DEFAULT_SCALAR_TYPES)
    yield
    reset_config()
    get_default_registry().clear()


@pytest.fixture
def registry():
    """A private registry, independent of the process default."""
    return SchemaRegistry()


@pytest.fixture
def user_params():
    """Nested request parameters for a user form."""
    return {
        "user": {
            "name": "John",
            "email": "john@example.com",
            "admin": True,
            "tags": ["a", "b"],
            "address": {"city": "Paris", "zip": "75001", "country": "FR"},
        },
        "controller": "users",
        "action": "create",
    }
