"""User administration commands."""

import click

from ar_admin.cli.context import Console, ensure_valid, pass_console, require_action
from ar_admin.cli.error_handlers import with_error_handling
from ar_admin.cli.utils.formatters import format_success, format_warning
from ar_admin.models.users import USER_ROLES
from ar_admin.services.activity_log import log_activity
from ar_admin.services.users import PasswordDelivery, UserAdminService
from ar_admin.validators import FormValidators, ValidationReport


def _service(console: Console) -> UserAdminService:
    return UserAdminService(console.client, console.functions)


def _report_delivery(delivery: PasswordDelivery) -> None:
    if delivery.email_sent:
        click.echo(format_success(delivery.message))
    else:
        click.echo(format_warning(delivery.message))
        if delivery.email_error:
            click.echo(format_warning(f"Email error: {delivery.email_error}"))


def _validate_email(email: str) -> None:
    report = ValidationReport()
    FormValidators.validate_email(email, "email", report)
    ensure_valid(report)


@click.group(name="users")
def users_group():
    """Create users and manage their access."""


@users_group.command(name="create")
@click.option("--email", required=True)
@click.option("--name", "full_name", required=True, help="Full name")
@click.option("--role", type=click.Choice(USER_ROLES), required=True)
@pass_console
def create(console: Console, email: str, full_name: str, role: str):
    """Create an approved user and email a temporary password.

    Example:
        ar-admin users create --email jo@example.com --name "Jo Doe" --role collector
    """
    with with_error_handling(console.debug):
        report = ValidationReport()
        FormValidators.validate_required(full_name, "name", report)
        FormValidators.validate_email(email, "email", report)
        FormValidators.validate_choice(role, "role", USER_ROLES, report)
        ensure_valid(report)

        panel = console.open_view("user-management")
        delivery = _service(console).create_user(email.strip(), full_name.strip(), role)
        log_activity(
            console.client,
            panel.auth.actor.id,
            "create_user",
            entity_type="user",
            entity_id=delivery.user_id,
            details={"email": delivery.email, "role": role},
        )
        click.echo(format_success(f"User {delivery.email} created as {role}"))
        _report_delivery(delivery)


@users_group.command(name="resend-password")
@click.argument("email")
@pass_console
def resend_password(console: Console, email: str):
    """Reset a user's password and email the new temporary one."""
    with with_error_handling(console.debug):
        _validate_email(email)
        panel = console.open_view("user-management")
        require_action(panel, "edit")

        delivery = _service(console).resend_temporary_password(email)
        log_activity(
            console.client,
            panel.auth.actor.id,
            "reset_password",
            entity_type="user",
            entity_id=delivery.user_id,
        )
        _report_delivery(delivery)


@users_group.command(name="force-delete")
@click.argument("email")
@click.confirmation_option(
    prompt="This permanently removes the user and their data. Continue?"
)
@pass_console
def force_delete(console: Console, email: str):
    """Delete a user and every record that references them."""
    with with_error_handling(console.debug):
        _validate_email(email)
        panel = console.open_view("user-management")
        require_action(panel, "delete")

        result = _service(console).force_delete_user(email)
        log_activity(
            console.client,
            panel.auth.actor.id,
            "force_delete_user",
            entity_type="user",
            details={"email": email.strip()},
        )
        message = result.get("message") if isinstance(result, dict) else None
        click.echo(format_success(message or f"User {email.strip()} deleted"))
