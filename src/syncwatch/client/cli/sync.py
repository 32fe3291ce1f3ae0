"""Sync command for the syncwatch CLI.

Commands:
- sync: Ask the server to start a full, partial or project sync
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click

from syncwatch.client.cli.config import get_polling_config, get_server_config
from syncwatch.client.cli.status import (
    CompletionReporter,
    attach_output,
    require_auth,
    wait_until_done,
)

if TYPE_CHECKING:
    from syncwatch.client.polling import Notification


def _print_notification(notification: Notification) -> None:
    from syncwatch.client.polling import NotificationType

    click.echo(notification.message, err=notification.type == NotificationType.ERROR)


@click.command()
@click.option("--project", "-p", "project_id", default=None, help="Sync a single project.")
@click.option("--phase", "phases", multiple=True, help="Phase to run (repeatable).")
@click.option("--partial", is_flag=True, help="Run only the selected phases.")
@click.option("--deep-history", is_flag=True, help="Also fetch the full issue history.")
@click.option("--incremental", is_flag=True, help="Only fetch changes since the last sync.")
@click.option(
    "--password",
    envvar="SYNCWATCH_ADMIN_PASSWORD",
    default=None,
    help="Admin password (prompted for a full sync if omitted).",
)
@click.option("--watch", "-w", is_flag=True, help="Follow progress until the sync completes.")
def sync(
    project_id: str | None,
    phases: tuple[str, ...],
    partial: bool,
    deep_history: bool,
    incremental: bool,
    password: str | None,
    watch: bool,
) -> None:
    """Start a sync on the server.

    Without --project, starts a full sync (or a partial one with --partial
    and --phase). Use --watch to follow progress until it completes.

    Examples:

        # Full sync, following progress
        syncwatch sync --watch

        # Only refresh active projects, incrementally
        syncwatch sync --partial --phase active_projects --incremental

        # Sync one project
        syncwatch sync --project 4f2c-91 --watch
    """
    from syncwatch.client.api import HTTPClient
    from syncwatch.client.auth import AuthSignal
    from syncwatch.client.polling import (
        BackgroundTimerScheduler,
        SyncStatusStore,
        SyncTrigger,
    )
    from syncwatch.core.status import SyncOptions

    if project_id and (phases or partial or deep_history or incremental):
        click.echo("Error: Sync options cannot be combined with --project.", err=True)
        sys.exit(1)
    if partial and not phases:
        click.echo("Error: --partial requires at least one --phase.", err=True)
        sys.exit(1)

    if project_id is None and password is None:
        password = click.prompt("Admin password", hide_input=True)

    scheduler = BackgroundTimerScheduler()
    auth = AuthSignal()
    with HTTPClient(get_server_config()) as client:
        require_auth(client, auth)

        polling_config = get_polling_config()
        store = SyncStatusStore(client, scheduler, auth, polling_config)
        trigger = SyncTrigger(
            client, store, auth, scheduler, polling_config, notify=_print_notification
        )
        reporter = CompletionReporter(until_complete=True)
        rejected = None

        try:
            if watch:
                rejected = attach_output(store, reporter, project_id)
                # Completion detection needs a baseline before the trigger
                store.start()

            if project_id:
                result = trigger.trigger_project_sync(project_id)
            else:
                options = SyncOptions(
                    phases=list(phases),
                    is_full_sync=not partial,
                    deep_history_sync=deep_history,
                    incremental_sync=incremental,
                )
                result = trigger.trigger_sync(options, password)

            if result.started and watch:
                wait_until_done(reporter)
        finally:
            trigger.close()
            store.close()
            scheduler.shutdown()

    if not result.started or reporter.failed or (rejected is not None and rejected.is_set()):
        sys.exit(1)
