"""Sign-in, sign-out and impersonation commands."""

import click

from ar_admin.cli.context import Console, pass_console
from ar_admin.cli.error_handlers import with_error_handling
from ar_admin.cli.utils.formatters import format_info, format_success, format_warning
from ar_admin.services.auth import AuthContext


def _describe(ctx: AuthContext) -> str:
    profile = ctx.profile
    text = f"{profile.display_name} <{profile.email}> ({profile.role})"
    if ctx.is_impersonating and ctx.original_profile is not None:
        text += f", impersonated by {ctx.original_profile.email}"
    return text


@click.group(name="auth")
def auth_group():
    """Manage the console session."""


@auth_group.command(name="login")
@click.option("--email", prompt=True, help="Account email")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@pass_console
def login(console: Console, email: str, password: str):
    """Sign in and store the session for later commands.

    Example:
        ar-admin auth login --email admin@example.com
    """
    with with_error_handling(console.debug):
        ctx = console.auth.sign_in(email.strip(), password)
        click.echo(format_success(f"Signed in as {_describe(ctx)}"))


@auth_group.command(name="logout")
@pass_console
def logout(console: Console):
    """Sign out and remove the stored session."""
    with with_error_handling(console.debug):
        console.auth.sign_out()
        click.echo(format_success("Signed out"))


@auth_group.command(name="whoami")
@pass_console
def whoami(console: Console):
    """Show the signed-in user and any active impersonation."""
    with with_error_handling(console.debug):
        ctx = console.current_user()
        click.echo(format_info(_describe(ctx)))
        if ctx.is_impersonating:
            click.echo(
                format_warning(
                    "Impersonation active. Run 'ar-admin auth stop-impersonating' "
                    "to return to your own view."
                )
            )


@auth_group.command(name="impersonate")
@click.argument("user_id")
@pass_console
def impersonate(console: Console, user_id: str):
    """View the console as another user (admins only)."""
    with with_error_handling(console.debug):
        ctx = console.auth.impersonate(user_id)
        click.echo(format_warning(f"Now viewing as {_describe(ctx)}"))


@auth_group.command(name="stop-impersonating")
@pass_console
def stop_impersonating(console: Console):
    """Return to your own view."""
    with with_error_handling(console.debug):
        ctx = console.auth.stop_impersonation()
        click.echo(format_success(f"Back to {_describe(ctx)}"))
