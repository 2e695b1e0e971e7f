"""CLI command groups."""

from ar_admin.cli.commands.analytics import analytics_group
from ar_admin.cli.commands.auth import auth_group
from ar_admin.cli.commands.backfill import backfill_group
from ar_admin.cli.commands.collectors import collectors_group
from ar_admin.cli.commands.cron import cron_group
from ar_admin.cli.commands.diagnostics import diagnostics_group
from ar_admin.cli.commands.fetch import fetch_group
from ar_admin.cli.commands.reminders import reminders_group
from ar_admin.cli.commands.sync import sync_group
from ar_admin.cli.commands.users import users_group
from ar_admin.cli.commands.views import views_group

__all__ = [
    "analytics_group",
    "auth_group",
    "backfill_group",
    "collectors_group",
    "cron_group",
    "diagnostics_group",
    "fetch_group",
    "reminders_group",
    "sync_group",
    "users_group",
    "views_group",
]
