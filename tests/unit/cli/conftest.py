"""
Fixtures shared by the command tests.
"""

from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from ar_admin.cli.context import Console
from ar_admin.models.users import UserProfile
from ar_admin.permissions import PermissionSet
from ar_admin.services.auth import AuthContext


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def admin_profile(sample_profile):
    return UserProfile(**sample_profile)


@pytest.fixture
def auth_context(admin_profile):
    """Signed-in admin, not impersonating."""
    return AuthContext(user_id=admin_profile.id, profile=admin_profile)


@pytest.fixture
def permissions():
    """Permissions returned for the signed-in user; admins pass every check."""
    return PermissionSet("admin")


@pytest.fixture
def console(test_config, mock_client, mock_functions, auth_context, permissions):
    """
    Console with mocked backend clients.

    ``open_view`` runs for real against the view registry, using the
    ``permissions`` fixture for the permission lookup.
    """
    console = Console(config=test_config)
    console._client = mock_client
    console._functions = mock_functions
    console._auth = MagicMock(name="AuthService")
    console._auth.current.return_value = auth_context

    with patch("ar_admin.cli.context.load_permissions", return_value=permissions):
        yield console
