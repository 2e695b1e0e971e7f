"""Database cron job commands."""

import click

from ar_admin.cli.context import Console, pass_console, require_action
from ar_admin.cli.error_handlers import DataValidationError, with_error_handling
from ar_admin.cli.utils.formatters import format_success, format_table
from ar_admin.services.cron import CronService


@click.group(name="cron")
def cron_group():
    """List and toggle scheduled database jobs."""


@cron_group.command(name="list")
@pass_console
def list_jobs(console: Console):
    """Show every cron job with its schedule."""
    with with_error_handling(console.debug):
        console.open_view("logs")
        jobs = CronService(console.client).list_jobs()
        rows = [
            [
                job.jobid,
                job.jobname,
                job.schedule_description,
                "active" if job.active else "paused",
                job.job_description,
            ]
            for job in jobs
        ]
        click.echo(format_table(["ID", "Job", "Schedule", "State", "Purpose"], rows))


@cron_group.command(name="toggle")
@click.argument("job_id", type=int)
@pass_console
def toggle(console: Console, job_id: int):
    """Pause an active job or resume a paused one."""
    with with_error_handling(console.debug):
        panel = console.open_view("cron-control")
        require_action(panel, "edit")

        service = CronService(console.client)
        jobs = {job.jobid: job for job in service.list_jobs()}
        if job_id not in jobs:
            raise DataValidationError(f"No cron job with id {job_id}")

        active = service.toggle(job_id, jobs[job_id].active)
        state = "resumed" if active else "paused"
        click.echo(format_success(f"Job {jobs[job_id].jobname} {state}"))
