"""Sync completion detection.

This module provides:
- CompletionDetector: Turns the snapshot stream into one reload per sync
- ScopedSyncTracker: Same detection, restricted to one project
- reload_on_completion: Wire a detector to a data store's full reload

Each consumer keeps its own detector because "was syncing" is relative
to what that consumer last observed.

Completion edges:
    Syncing ──► Idle (last sync time set)          reload
    Idle    ──► Idle (last sync time T0 ──► T1)    reload (background sync)
    Idle    ──► Idle (last sync time None ──► T1)  reload once a baseline exists
    any     ──► Errored                            no reload, clears in-progress
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum, auto
from typing import TYPE_CHECKING

from syncwatch.core.types import SyncState

if TYPE_CHECKING:
    from syncwatch.client.polling.store import SyncStatusStore
    from syncwatch.client.polling.types import DataStore
    from syncwatch.core.status import SyncStatus

logger = logging.getLogger(__name__)


class ObservedState(Enum):
    """Job state as seen by one consumer."""

    IDLE = auto()
    SYNCING = auto()
    ERRORED = auto()


def classify(status: SyncStatus) -> ObservedState:
    """Map a snapshot to the consumer-side state."""
    if status.status == SyncState.ERROR:
        return ObservedState.ERRORED
    if status.is_active:
        return ObservedState.SYNCING
    return ObservedState.IDLE


class CompletionDetector:
    """Edge detector firing one reload per completed sync.

    Usage:
        detector = CompletionDetector(data_store.load)
        unsubscribe = detector.attach(store)
    """

    def __init__(self, reload: Callable[[], None]) -> None:
        """Initialize the detector.

        Args:
            reload: Called once for every detected completion.
        """
        self._reload = reload
        self._previous_state: ObservedState | None = None
        self._previous_last_sync: datetime | None = None
        self._in_progress = False
        self._reload_count = 0

    @property
    def has_baseline(self) -> bool:
        """Check if at least one snapshot was observed."""
        return self._previous_state is not None

    @property
    def in_progress(self) -> bool:
        """Check if this consumer currently considers a sync in progress."""
        return self._in_progress

    @property
    def reload_count(self) -> int:
        """Get the number of reloads fired so far."""
        return self._reload_count

    def attach(self, store: SyncStatusStore) -> Callable[[], None]:
        """Subscribe to a status store.

        Returns:
            Function detaching the detector.
        """
        return store.subscribe(self.observe)

    def observe(self, status: SyncStatus) -> bool:
        """Evaluate one snapshot against the previous one.

        Args:
            status: New snapshot.

        Returns:
            True if a reload was fired.
        """
        current = classify(status)
        completed = self._is_completion(current, status.last_sync_time)

        if current == ObservedState.SYNCING:
            self._in_progress = True
        else:
            self._in_progress = False

        self.rebaseline(status)

        if completed:
            self._fire()
        return completed

    def rebaseline(self, status: SyncStatus) -> None:
        """Remember a snapshot as the previous one without evaluating it."""
        self._previous_state = classify(status)
        self._previous_last_sync = status.last_sync_time

    def _is_completion(
        self, current: ObservedState, last_sync: datetime | None
    ) -> bool:
        previous = self._previous_state
        if previous is None:
            # First snapshot only establishes the baseline
            return False
        if current != ObservedState.IDLE:
            return False
        if previous == ObservedState.SYNCING:
            return last_sync is not None
        if last_sync is None or last_sync == self._previous_last_sync:
            return False
        # Completed without this consumer seeing it run (scheduled sync, other tab)
        return True

    def _fire(self) -> None:
        self._reload_count += 1
        logger.info("Sync completed, reloading data")
        try:
            self._reload()
        except Exception:
            logger.exception("Reload after sync completion failed")


class ScopedSyncTracker:
    """Completion detection for a single project.

    Snapshots of a sync scoped to another project are ignored; the
    tracker waits for that job to finish and re-baselines afterwards,
    so another project's sync never refreshes this one.
    """

    def __init__(self, project_id: str, data_store: DataStore) -> None:
        """Initialize the tracker.

        Args:
            project_id: Project to track.
            data_store: Data cache whose refresh_project() is called.
        """
        self._project_id = project_id
        self._data_store = data_store
        self._detector = CompletionDetector(self._refresh)
        self._waiting_on_other_job = False

    @property
    def project_id(self) -> str:
        """Get the tracked project."""
        return self._project_id

    @property
    def waiting_on_other_job(self) -> bool:
        """Check if a sync of another project is running."""
        return self._waiting_on_other_job

    @property
    def in_progress(self) -> bool:
        """Check if a sync covering this project is in progress."""
        return self._detector.in_progress

    @property
    def refresh_count(self) -> int:
        """Get the number of refreshes fired so far."""
        return self._detector.reload_count

    def attach(self, store: SyncStatusStore) -> Callable[[], None]:
        """Subscribe to a status store.

        Returns:
            Function detaching the tracker.
        """
        return store.subscribe(self.observe)

    def observe(self, status: SyncStatus) -> bool:
        """Evaluate one snapshot for this project.

        Returns:
            True if a refresh was fired.
        """
        scope = status.syncing_project_id
        if scope is not None and scope != self._project_id:
            if not self._waiting_on_other_job:
                logger.debug(
                    "Project %s: sync of project %s running, waiting",
                    self._project_id,
                    scope,
                )
            self._waiting_on_other_job = True
            return False

        if self._waiting_on_other_job:
            self._waiting_on_other_job = False
            if not status.is_active:
                # The other job's completion is not ours
                self._detector.rebaseline(status)
                return False

        return self._detector.observe(status)

    def _refresh(self) -> None:
        self._data_store.refresh_project(self._project_id)


def reload_on_completion(
    store: SyncStatusStore, data_store: DataStore
) -> CompletionDetector:
    """Reload the whole data store after every completed sync.

    Returns:
        The attached detector.
    """
    detector = CompletionDetector(data_store.load)
    detector.attach(store)
    return detector
