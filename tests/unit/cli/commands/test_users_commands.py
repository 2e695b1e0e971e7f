"""Unit tests for the users command group."""

from unittest.mock import patch

import pytest

from ar_admin.cli.commands.users import users_group
from ar_admin.models.users import UserPermission
from ar_admin.permissions import PermissionSet
from ar_admin.services.users import PasswordDelivery

ADMIN_ARGS = ["create", "--email", "jo@example.com", "--name", "Jo", "--role", "admin"]


@pytest.fixture
def service():
    with patch("ar_admin.cli.commands.users.UserAdminService") as factory:
        yield factory.return_value


@pytest.fixture
def log():
    with patch("ar_admin.cli.commands.users.log_activity") as log_activity:
        yield log_activity


def delivery(email_sent=True, email_error=None):
    return PasswordDelivery(
        user_id="new-1",
        email="jo@example.com",
        temporary_password="Tmp-Pass-123",
        email_sent=email_sent,
        email_error=email_error,
    )


class TestCreateUser:
    def test_create(self, runner, console, service, log):
        service.create_user.return_value = delivery()

        result = runner.invoke(
            users_group,
            [
                "create",
                "--email",
                " jo@example.com ",
                "--name",
                " Jo Doe ",
                "--role",
                "collector",
            ],
            obj=console,
        )

        assert result.exit_code == 0, result.output
        service.create_user.assert_called_once_with(
            "jo@example.com", "Jo Doe", "collector"
        )
        log.assert_called_once_with(
            console.client,
            "user-1",
            "create_user",
            entity_type="user",
            entity_id="new-1",
            details={"email": "jo@example.com", "role": "collector"},
        )
        assert "User jo@example.com created as collector" in result.output
        assert "A temporary password has been sent" in result.output
        assert "Tmp-Pass-123" not in result.output

    def test_email_failure_shows_password(self, runner, console, service, log):
        service.create_user.return_value = delivery(False, "SMTP down")

        result = runner.invoke(users_group, ADMIN_ARGS, obj=console)

        assert result.exit_code == 0
        assert "Tmp-Pass-123" in result.output
        assert "Email error: SMTP down" in result.output

    def test_invalid_form(self, runner, console, service, log):
        result = runner.invoke(
            users_group,
            ["create", "--email", "jo", "--name", " ", "--role", "viewer"],
            obj=console,
        )

        assert result.exit_code == 3
        assert "name: This field is required" in result.output
        assert "email: Please enter a valid email address" in result.output
        service.create_user.assert_not_called()

    def test_unknown_role(self, runner, console, service, log):
        result = runner.invoke(
            users_group,
            ["create", "--email", "jo@example.com", "--name", "Jo", "--role", "boss"],
            obj=console,
        )
        assert result.exit_code == 2

    def test_requires_create_permission(self, runner, console, service, log):
        viewer = PermissionSet(
            "manager", [UserPermission(permission_key="admin_users", can_view=True)]
        )
        with patch("ar_admin.cli.context.load_permissions", return_value=viewer):
            result = runner.invoke(users_group, ADMIN_ARGS, obj=console)

        assert result.exit_code == 10
        service.create_user.assert_not_called()


class TestPasswordsAndDeletion:
    def test_resend_password(self, runner, console, service, log):
        service.resend_temporary_password.return_value = delivery()

        result = runner.invoke(
            users_group, ["resend-password", "jo@example.com"], obj=console
        )

        assert result.exit_code == 0
        service.resend_temporary_password.assert_called_once_with("jo@example.com")
        assert log.call_args.args[2] == "reset_password"

    def test_resend_password_invalid_email(self, runner, console, service, log):
        result = runner.invoke(users_group, ["resend-password", "nobody"], obj=console)

        assert result.exit_code == 3
        service.resend_temporary_password.assert_not_called()

    def test_force_delete(self, runner, console, service, log):
        service.force_delete_user.return_value = {"message": "User removed"}

        result = runner.invoke(
            users_group, ["force-delete", "jo@example.com", "--yes"], obj=console
        )

        assert result.exit_code == 0
        service.force_delete_user.assert_called_once_with("jo@example.com")
        assert log.call_args.kwargs["details"] == {"email": "jo@example.com"}
        assert "User removed" in result.output

    def test_force_delete_needs_confirmation(self, runner, console, service, log):
        result = runner.invoke(
            users_group, ["force-delete", "jo@example.com"], input="n\n", obj=console
        )

        assert result.exit_code == 1
        service.force_delete_user.assert_not_called()

    def test_force_delete_requires_delete_permission(
        self, runner, console, service, log
    ):
        editor = PermissionSet(
            "manager",
            [
                UserPermission(
                    permission_key="admin_users",
                    can_view=True,
                    can_create=True,
                    can_edit=True,
                )
            ],
        )
        with patch("ar_admin.cli.context.load_permissions", return_value=editor):
            result = runner.invoke(
                users_group, ["force-delete", "jo@example.com", "--yes"], obj=console
            )

        assert result.exit_code == 10
        service.force_delete_user.assert_not_called()
