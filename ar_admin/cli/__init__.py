"""AR Admin Console CLI.

Command-line replacement for the collections dashboard: sign in, open
views, monitor and run syncs, drive bulk fetches and backfills, and manage
collectors, reminders and users.
"""

import click

from ar_admin import __version__
from ar_admin.cli.commands import (
    analytics_group,
    auth_group,
    backfill_group,
    collectors_group,
    cron_group,
    diagnostics_group,
    fetch_group,
    reminders_group,
    sync_group,
    users_group,
    views_group,
)
from ar_admin.cli.context import Console
from ar_admin.cli.error_handlers import ConfigurationError
from ar_admin.config.logging_config import LoggingConfig, configure_logging
from ar_admin.utils.logging_utils import LogContext


def _setup_logging(console: Console) -> None:
    try:
        config = LoggingConfig.from_settings(console.config, debug=console.debug)
    except ConfigurationError:
        # Commands report the configuration problem themselves
        config = LoggingConfig.from_env()
        if console.debug:
            config.log_level = "DEBUG"
    configure_logging(config)


@click.group(help="AR Admin Console - manage Acumatica sync, collections and users")
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Show debug logs and stack traces")
@click.pass_context
def cli(ctx: click.Context, debug: bool):
    """AR Admin Console main entry point."""
    console = ctx.ensure_object(Console)
    console.debug = console.debug or debug
    _setup_logging(console)
    ctx.with_resource(LogContext(command=ctx.invoked_subcommand))


# Register command groups
cli.add_command(auth_group)
cli.add_command(views_group)
cli.add_command(sync_group)
cli.add_command(fetch_group)
cli.add_command(backfill_group)
cli.add_command(cron_group)
cli.add_command(collectors_group)
cli.add_command(reminders_group)
cli.add_command(users_group)
cli.add_command(diagnostics_group)
cli.add_command(analytics_group)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
