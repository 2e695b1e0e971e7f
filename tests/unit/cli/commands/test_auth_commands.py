"""Unit tests for the auth command group."""

import pytest

from ar_admin.cli.commands.auth import auth_group
from ar_admin.models.users import UserProfile
from ar_admin.services.auth import AuthContext
from ar_admin.services.errors import AuthenticationError, PermissionDeniedError


@pytest.fixture
def collector():
    return UserProfile(
        id="c-1", email="cara@example.com", role="collector", full_name="Cara"
    )


@pytest.fixture
def impersonating(collector, admin_profile):
    return AuthContext(
        user_id=admin_profile.id,
        profile=collector,
        is_impersonating=True,
        original_profile=admin_profile,
    )


class TestLogin:
    def test_login(self, runner, console, auth_context):
        console.auth.sign_in.return_value = auth_context

        result = runner.invoke(
            auth_group,
            ["login", "--email", " admin@example.com "],
            input="pw\n",
            obj=console,
        )

        assert result.exit_code == 0
        console.auth.sign_in.assert_called_once_with("admin@example.com", "pw")
        assert "Signed in as Ada Admin <admin@example.com> (admin)" in result.output

    def test_login_rejected(self, runner, console):
        console.auth.sign_in.side_effect = AuthenticationError(
            "Invalid login credentials", 400
        )

        result = runner.invoke(
            auth_group,
            ["login", "--email", "admin@example.com", "--password", "bad"],
            obj=console,
        )

        assert result.exit_code == 5
        assert "Invalid login credentials" in result.output
        assert "ar-admin auth login" in result.output

    def test_logout(self, runner, console):
        result = runner.invoke(auth_group, ["logout"], obj=console)

        assert result.exit_code == 0
        console.auth.sign_out.assert_called_once_with()


class TestWhoami:
    def test_whoami(self, runner, console):
        result = runner.invoke(auth_group, ["whoami"], obj=console)

        assert result.exit_code == 0
        assert "Ada Admin <admin@example.com> (admin)" in result.output
        assert "Impersonation active" not in result.output

    def test_whoami_while_impersonating(self, runner, console, impersonating):
        console.auth.current.return_value = impersonating

        result = runner.invoke(auth_group, ["whoami"], obj=console)

        assert "Cara <cara@example.com> (collector)" in result.output
        assert "impersonated by admin@example.com" in result.output
        assert "Impersonation active" in result.output

    def test_whoami_signed_out(self, runner, console):
        console.auth.current.side_effect = AuthenticationError("Not signed in")

        result = runner.invoke(auth_group, ["whoami"], obj=console)

        assert result.exit_code == 5


class TestImpersonation:
    def test_impersonate(self, runner, console, impersonating):
        console.auth.impersonate.return_value = impersonating

        result = runner.invoke(auth_group, ["impersonate", "c-1"], obj=console)

        assert result.exit_code == 0
        console.auth.impersonate.assert_called_once_with("c-1")
        assert "Now viewing as Cara" in result.output

    def test_impersonate_denied(self, runner, console):
        console.auth.impersonate.side_effect = PermissionDeniedError(
            "impersonate", "admin_users", "edit"
        )

        result = runner.invoke(auth_group, ["impersonate", "c-1"], obj=console)

        assert result.exit_code == 10

    def test_stop_impersonating(self, runner, console, auth_context):
        console.auth.stop_impersonation.return_value = auth_context

        result = runner.invoke(auth_group, ["stop-impersonating"], obj=console)

        assert result.exit_code == 0
        assert "Back to Ada Admin" in result.output
