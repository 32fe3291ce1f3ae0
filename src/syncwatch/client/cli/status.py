"""Status commands for the syncwatch CLI.

Commands:
- status: Show the current sync status once
- watch: Follow the sync status until interrupted or completed
"""

from __future__ import annotations

import json
import sys
import threading
from typing import TYPE_CHECKING

import click
import httpx

from syncwatch.client.cli.config import get_polling_config, get_server_config
from syncwatch.core.types import SyncState

if TYPE_CHECKING:
    from syncwatch.client.api import HTTPClient
    from syncwatch.client.auth import AuthSignal
    from syncwatch.client.polling import SyncStatusStore
    from syncwatch.core.status import SyncStatus


def describe_status(status: SyncStatus) -> str:
    """Render a snapshot as a single status line."""
    from syncwatch.client.polling import LastSyncView, SyncProgressView

    progress = SyncProgressView()
    progress.update(status)

    if status.status == SyncState.ERROR:
        return f"Error: {progress.error}"

    if status.is_active:
        parts = ["Syncing"]
        if progress.percent is not None:
            parts[0] += f" {progress.percent:.0f}%"
        if status.syncing_project_id:
            parts.append(f"project {status.syncing_project_id}")
        if progress.current_phase_label:
            parts.append(progress.current_phase_label)
        if progress.status_message:
            parts.append(progress.status_message)
        return " - ".join(parts)

    last_sync = LastSyncView()
    last_sync.update(status)
    line = f"Idle. {last_sync.describe()}"
    if progress.partial_progress_label:
        line += f" ({progress.partial_progress_label})"
    return line


class CompletionReporter:
    """Data store stand-in that reports completed syncs on the terminal."""

    def __init__(self, until_complete: bool) -> None:
        self._until_complete = until_complete
        self.done = threading.Event()
        self.failed = False

    def fail(self) -> None:
        """Record a followed sync that ended in error."""
        self.failed = True
        if self._until_complete:
            self.done.set()

    def load(self) -> None:
        click.echo("Sync completed.")
        if self._until_complete:
            self.done.set()

    def refresh_project(self, project_id: str) -> None:
        click.echo(f"Sync of project {project_id} completed.")
        if self._until_complete:
            self.done.set()


def attach_output(
    store: SyncStatusStore,
    reporter: CompletionReporter,
    project_id: str | None = None,
) -> threading.Event:
    """Print status changes and completions of a store on the terminal.

    Args:
        store: Status store to report on.
        reporter: Completion sink; failed runs are reported to it, and its
            done event is set when polling stops because the session was
            rejected.
        project_id: Only report completion of this project's syncs.

    Returns:
        Event set if the server rejected the session.
    """
    from syncwatch.client.polling import ScopedSyncTracker, reload_on_completion

    last_line: list[str] = []
    followed: list[bool] = [False]
    rejected = threading.Event()

    def covers(status: SyncStatus) -> bool:
        return project_id is None or status.syncing_project_id in (None, project_id)

    def print_status(status: SyncStatus) -> None:
        # A job that was seen running and then reports an error ends the run
        if status.status == SyncState.ERROR:
            if followed[0]:
                reporter.fail()
            followed[0] = False
        else:
            followed[0] = status.is_active and covers(status)

        line = describe_status(status)
        if last_line and last_line[-1] == line:
            return
        last_line[:] = [line]
        click.echo(line)

    def on_unauthenticated() -> None:
        click.echo("Error: Session rejected by the server.", err=True)
        rejected.set()
        reporter.done.set()

    if project_id:
        ScopedSyncTracker(project_id, reporter).attach(store)
    else:
        reload_on_completion(store, reporter)
    store.subscribe(print_status)
    store.on_unauthenticated(on_unauthenticated)
    return rejected


def wait_until_done(reporter: CompletionReporter) -> None:
    """Block until the reporter is done or the user interrupts."""
    try:
        while not reporter.done.wait(0.5):
            pass
    except KeyboardInterrupt:
        click.echo("\nStopped.")


def require_auth(client: HTTPClient, auth: AuthSignal) -> None:
    """Exit with an error unless the server accepts the session."""
    if not auth.check(client):
        click.echo(
            "Error: Not authenticated. Check the session token with 'syncwatch configure'.",
            err=True,
        )
        sys.exit(1)


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw status as JSON.")
def status(as_json: bool) -> None:
    """Show the current sync status."""
    from syncwatch.client.api import APIError, AuthenticationError, HTTPClient

    with HTTPClient(get_server_config()) as client:
        try:
            current = client.get_status()
        except AuthenticationError:
            click.echo("Error: Not authenticated. Run 'syncwatch configure'.", err=True)
            sys.exit(1)
        except (APIError, httpx.HTTPError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    if as_json:
        click.echo(json.dumps(current.to_dict(), indent=2))
    else:
        click.echo(describe_status(current))


@click.command()
@click.option("--project", "-p", "project_id", default=None, help="Only report syncs of this project.")
@click.option("--until-complete", is_flag=True, help="Exit after the next completed or failed sync.")
def watch(project_id: str | None, until_complete: bool) -> None:
    """Follow the sync status.

    Prints a line each time the status changes. Use --until-complete to
    exit once the next sync finishes.
    """
    from syncwatch.client.api import HTTPClient
    from syncwatch.client.auth import AuthSignal
    from syncwatch.client.polling import BackgroundTimerScheduler, SyncStatusStore

    scheduler = BackgroundTimerScheduler()
    auth = AuthSignal()
    with HTTPClient(get_server_config()) as client:
        require_auth(client, auth)
        store = SyncStatusStore(client, scheduler, auth, get_polling_config())
        reporter = CompletionReporter(until_complete)
        rejected = attach_output(store, reporter, project_id)
        try:
            store.start()
            wait_until_done(reporter)
        finally:
            store.close()
            scheduler.shutdown()

    if rejected.is_set() or (until_complete and reporter.failed):
        sys.exit(1)
