"""
Global pytest configuration and fixtures.
"""

from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

from ar_admin.config import AdminConsoleConfig, reload_config
from ar_admin.services.supabase_client import QueryResult

QUERY_METHODS = (
    "select",
    "eq",
    "neq",
    "gt",
    "gte",
    "lt",
    "lte",
    "like",
    "ilike",
    "in_",
    "is_",
    "order",
    "range",
    "limit",
    "single",
    "maybe_single",
    "insert",
    "update",
    "delete",
)


@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Test environment variables for configuration."""
    return {
        "SUPABASE_URL": "https://test-project.supabase.co",
        "SUPABASE_ANON_KEY": "test-anon-key",
        "SUPABASE_SERVICE_ROLE_KEY": "test-service-role-key",
        "ENVIRONMENT": "testing",
        "DEBUG": "false",
        "LOG_LEVEL": "DEBUG",
        "BATCH_PAUSE_SECONDS": "0",
    }


@pytest.fixture
def mock_env(test_env_vars, monkeypatch, tmp_path):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("SESSION_FILE", str(tmp_path / "session.json"))

    # Clear the global config to force reload with test values
    import ar_admin.config.settings

    ar_admin.config.settings._config = None

    yield test_env_vars

    # Clean up
    ar_admin.config.settings._config = None


@pytest.fixture
def test_config(mock_env) -> AdminConsoleConfig:
    """Test configuration instance."""
    return reload_config()


def make_query(data: Any = None, count: Optional[int] = None) -> MagicMock:
    """A chainable query builder mock whose execute() returns ``data``."""
    query = MagicMock(name="query")
    for method in QUERY_METHODS:
        getattr(query, method).return_value = query
    query.execute.return_value = QueryResult(data=data, count=count)
    return query


@pytest.fixture
def query_factory():
    """Build chainable query mocks: ``query_factory(data=[...], count=3)``."""
    return make_query


@pytest.fixture
def mock_client():
    """SupabaseClient mock; set ``mock_client.table.return_value`` per test."""
    client = MagicMock(name="SupabaseClient")
    client.table.return_value = make_query([])
    client.rpc.return_value = []
    client.access_token = "user-token"
    return client


@pytest.fixture
def mock_functions():
    """EdgeFunctionClient mock."""
    functions = MagicMock(name="EdgeFunctionClient")
    functions.invoke.return_value = {"success": True}
    return functions


@pytest.fixture
def sample_session() -> Dict[str, Any]:
    """Auth token response of a signed-in admin."""
    return {
        "access_token": "access-123",
        "refresh_token": "refresh-123",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": 4102444800,  # 2100-01-01
        "user": {"id": "user-1", "email": "admin@example.com"},
    }


@pytest.fixture
def sample_profile() -> Dict[str, Any]:
    """user_profiles row of the signed-in admin."""
    return {
        "id": "user-1",
        "email": "admin@example.com",
        "role": "admin",
        "full_name": "Ada Admin",
    }


# Pytest configuration for different test types
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        # Add unit marker for tests in tests/unit/
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
