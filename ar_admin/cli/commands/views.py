"""View navigation commands."""

from typing import Optional

import click

from ar_admin.cli.context import Console, pass_console
from ar_admin.cli.error_handlers import with_error_handling
from ar_admin.cli.utils.formatters import format_info, format_success, format_table
from ar_admin.permissions import load_permissions


@click.group(name="views")
def views_group():
    """List and open console views."""


@views_group.command(name="list")
@pass_console
def list_views(console: Console):
    """Show the views you may open, grouped as in the dashboard navigation."""
    with with_error_handling(console.debug):
        ctx = console.current_user()
        permissions = load_permissions(console.client, ctx.effective_user_id)
        grouped = console.registry.accessible(permissions)

        if not grouped:
            click.echo(format_info("No views available for your account."))
            return

        rows = [
            [group, spec.key, spec.title, spec.handler or "(dashboard only)"]
            for group, specs in grouped.items()
            for spec in specs
        ]
        click.echo(format_table(["Group", "View", "Title", "Command"], rows))


@views_group.command(name="open")
@click.argument("view_key", required=False)
@pass_console
def open_view(console: Console, view_key: Optional[str]):
    """Resolve a view key and show the command that renders it.

    Without a key, or with an unknown one, your role's default view opens.
    """
    with with_error_handling(console.debug):
        panel = console.open_view(view_key or "")
        spec = panel.view
        click.echo(format_success(f"{spec.title} ({spec.key})"))
        if spec.handler:
            click.echo(format_info(f"Run: ar-admin {spec.handler}"))
        else:
            click.echo(format_info("This view is only available in the web dashboard."))
