"""Read-only views over the status store for individual UI surfaces.

This module provides:
- StatusView: Base class holding the last received snapshot
- SyncButtonView: Toolbar sync button
- SyncProgressView: Progress modal (percent, phases, messages)
- LastSyncView: "Last synced ..." label
- ProjectSyncView: Per-project sync indicator in detail panels

Views only derive display values. They never mutate the snapshots
they receive.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from syncwatch.core.types import SyncState

if TYPE_CHECKING:
    from syncwatch.client.polling.store import SyncStatusStore
    from syncwatch.client.polling.trigger import SyncTrigger
    from syncwatch.core.status import SyncPhase, SyncStatus


class StatusView:
    """Base class for views fed by the status store."""

    def __init__(self) -> None:
        self._status: SyncStatus | None = None
        self._listeners: list[Callable[[], None]] = []
        self._subscriptions: list[Callable[[], None]] = []

    @property
    def status(self) -> SyncStatus | None:
        """Get the last snapshot received."""
        return self._status

    def attach(self, store: SyncStatusStore) -> Callable[[], None]:
        """Subscribe to a status store.

        Returns:
            Function detaching the view from the store.
        """
        unsubscribe = store.subscribe(self.update)
        self._subscriptions.append(unsubscribe)
        return unsubscribe

    def detach(self) -> None:
        """Drop every subscription this view holds."""
        subscriptions, self._subscriptions = self._subscriptions, []
        for unsubscribe in subscriptions:
            unsubscribe()

    def on_change(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a re-render callback.

        Returns:
            Function removing the callback.
        """
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def update(self, status: SyncStatus) -> None:
        """Receive a new snapshot."""
        self._status = status
        self._changed()

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()


class SyncButtonView(StatusView):
    """State of the toolbar sync button."""

    @property
    def is_syncing(self) -> bool:
        return self._status is not None and self._status.is_active

    @property
    def disabled(self) -> bool:
        """The button is disabled while a sync runs or before the first poll."""
        return self._status is None or self.is_syncing

    @property
    def label(self) -> str:
        status = self._status
        if status is None or not status.is_active:
            return "Sync"
        if status.progress_percent is not None:
            return f"Syncing... {min(status.progress_percent, 100):.0f}%"
        return "Syncing..."


class SyncProgressView(StatusView):
    """Content of the sync progress modal."""

    @property
    def percent(self) -> float | None:
        """Progress clamped to 100 for display."""
        if self._status is None or self._status.progress_percent is None:
            return None
        return max(0.0, min(self._status.progress_percent, 100.0))

    @property
    def phases(self) -> tuple[SyncPhase, ...]:
        return self._status.phases if self._status else ()

    @property
    def current_phase_label(self) -> str | None:
        if self._status is None:
            return None
        phase = self._status.phase_in_progress
        if phase is not None:
            return phase.label
        return self._status.current_phase

    @property
    def status_message(self) -> str | None:
        return self._status.status_message if self._status else None

    @property
    def api_query_count(self) -> int | None:
        return self._status.api_query_count if self._status else None

    @property
    def error(self) -> str | None:
        if self._status is None or self._status.status != SyncState.ERROR:
            return None
        return self._status.error or "Sync failed"

    @property
    def partial_progress_label(self) -> str | None:
        """E.g. "3 of 10 projects synced" for a resumable partial sync."""
        if self._status is None or not self._status.has_partial_sync:
            return None
        progress = self._status.partial_sync_progress
        if progress is None:
            return "Partial sync available"
        return f"{progress.completed} of {progress.total} projects synced"

    @property
    def project_progress_label(self) -> str | None:
        """E.g. "Project 2/5: Billing" while projects are processed."""
        if self._status is None or self._status.stats is None:
            return None
        stats = self._status.stats
        if not stats.total_projects_count:
            return None
        label = f"Project {stats.current_project_index}/{stats.total_projects_count}"
        if stats.current_project_name:
            label += f": {stats.current_project_name}"
        return label


class LastSyncView(StatusView):
    """Label describing when the last sync completed."""

    @property
    def last_sync_time(self) -> datetime | None:
        return self._status.last_sync_time if self._status else None

    def describe(self, now: datetime | None = None) -> str:
        """Describe the last sync relative to now."""
        last = self.last_sync_time
        if last is None:
            return "Never synced"

        now = now or datetime.now(UTC)
        seconds = max(0, int((now - last).total_seconds()))
        if seconds < 60:
            return "Last synced just now"
        minutes = seconds // 60
        if minutes < 60:
            return f"Last synced {minutes} minute{'s' if minutes != 1 else ''} ago"
        hours = minutes // 60
        if hours < 24:
            return f"Last synced {hours} hour{'s' if hours != 1 else ''} ago"
        days = hours // 24
        return f"Last synced {days} day{'s' if days != 1 else ''} ago"


class ProjectSyncView(StatusView):
    """Sync indicator for one project's detail panel.

    Combines the published status with the trigger's local state for
    the project (syncing flag and kept error).
    """

    def __init__(self, project_id: str, trigger: SyncTrigger | None = None) -> None:
        super().__init__()
        self._project_id = project_id
        self._trigger = trigger
        if trigger is not None:
            self._subscriptions.append(trigger.add_listener(self._on_trigger_change))

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def is_syncing(self) -> bool:
        """Check if a sync of this project is running."""
        if self._trigger is not None and self._trigger.is_syncing(self._project_id):
            return True
        status = self._status
        return (
            status is not None
            and status.is_active
            and status.syncing_project_id == self._project_id
        )

    @property
    def waiting_on_other_job(self) -> bool:
        """Check if another sync blocks syncing this project."""
        status = self._status
        if status is None or not status.is_active:
            return False
        return status.syncing_project_id not in (None, self._project_id)

    @property
    def covered_by_full_sync(self) -> bool:
        status = self._status
        return (
            status is not None
            and status.is_active
            and status.syncing_project_id is None
        )

    @property
    def error(self) -> str | None:
        if self._trigger is not None:
            local = self._trigger.local_error(self._project_id)
            if local:
                return local
        return None

    def _on_trigger_change(self, scope: str | None) -> None:
        if scope == self._project_id:
            self._changed()
