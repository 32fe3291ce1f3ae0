"""Sync status snapshot and sync options.

This module provides:
- SyncStatus: Immutable snapshot parsed from one status poll
- SyncPhase, SyncStats, PartialSyncProgress: Nested snapshot parts
- SyncOptions: Opaque configuration passed through to the sync service
- parse_timestamp: Server timestamp parsing
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from syncwatch.core.types import PhaseStatus, SyncState


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp sent by the server.

    The status endpoint sends epoch milliseconds; ISO-8601 strings
    are accepted as well.

    Args:
        value: Raw JSON value.

    Returns:
        Timezone-aware datetime, or None for null/empty values.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if value is None or value == "" or value == 0:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
    raise ValueError(f"Invalid timestamp: {value!r}")


@dataclass(frozen=True)
class SyncPhase:
    """One named sub-stage of the sync job."""

    phase: str
    label: str
    status: PhaseStatus = PhaseStatus.PENDING

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncPhase:
        """Create from API response dictionary."""
        if not isinstance(data, dict):
            raise ValueError(f"Expected phase object, got {type(data).__name__}")
        return cls(
            phase=data["phase"],
            label=data.get("label") or data["phase"],
            status=PhaseStatus(data.get("status") or "pending"),
        )


@dataclass(frozen=True)
class SyncStats:
    """Per-run counters reported while a sync is running."""

    started_issues_count: int = 0
    total_projects_count: int = 0
    current_project_index: int = 0
    current_project_name: str | None = None
    project_issues_count: int = 0
    new_count: int = 0
    updated_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncStats:
        """Create from API response dictionary."""
        if not isinstance(data, dict):
            raise ValueError(f"Expected stats object, got {type(data).__name__}")
        return cls(
            started_issues_count=int(data.get("startedIssuesCount") or 0),
            total_projects_count=int(data.get("totalProjectsCount") or 0),
            current_project_index=int(data.get("currentProjectIndex") or 0),
            current_project_name=data.get("currentProjectName"),
            project_issues_count=int(data.get("projectIssuesCount") or 0),
            new_count=int(data.get("newCount") or 0),
            updated_count=int(data.get("updatedCount") or 0),
        )


@dataclass(frozen=True)
class PartialSyncProgress:
    """Progress of an interrupted sync that can be resumed."""

    completed: int
    total: int


@dataclass(frozen=True)
class SyncStatus:
    """Snapshot of the sync job, parsed from one status poll.

    Snapshots are never mutated. Each poll produces a new one that
    replaces the previous one for every subscriber.

    Attributes:
        status: Current job state.
        is_running: True while the sync service is executing, independent
            of status (a job may report idle while finishing cleanup).
        last_sync_time: Completion time of the most recent successful sync.
        progress_percent: Progress of the running job, 0 to 100+.
        error: Error reported by the job when status is ERROR.
        status_message: Human-readable description of the current step.
        api_query_count: Number of upstream API queries made so far.
        phases: Ordered phases with their progress.
        current_phase: Name of the phase in progress.
        has_partial_sync: True if an interrupted sync can be resumed.
        partial_sync_progress: Completed/total projects of that partial sync.
        stats: Per-run counters.
        syncing_project_id: Project the running job is scoped to, None for
            a full sync.
        optimistic: True for a locally asserted snapshot that no poll has
            confirmed yet.
    """

    status: SyncState = SyncState.IDLE
    is_running: bool = False
    last_sync_time: datetime | None = None
    progress_percent: float | None = None
    error: str | None = None
    status_message: str | None = None
    api_query_count: int | None = None
    phases: tuple[SyncPhase, ...] = ()
    current_phase: str | None = None
    has_partial_sync: bool = False
    partial_sync_progress: PartialSyncProgress | None = None
    stats: SyncStats | None = None
    syncing_project_id: str | None = None
    optimistic: bool = False

    @property
    def is_active(self) -> bool:
        """Check if a sync job is in progress."""
        return self.status == SyncState.SYNCING or self.is_running

    @property
    def phase_in_progress(self) -> SyncPhase | None:
        """Get the phase currently in progress, if any."""
        for phase in self.phases:
            if phase.status == PhaseStatus.IN_PROGRESS:
                return phase
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncStatus:
        """Create from API response dictionary.

        Raises:
            ValueError: If the body has an unexpected shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        progress = data.get("progressPercent")
        partial = data.get("partialSyncProgress")
        stats = data.get("stats")
        return cls(
            status=SyncState(data.get("status") or "idle"),
            is_running=bool(data.get("isRunning")),
            last_sync_time=parse_timestamp(data.get("lastSyncTime")),
            progress_percent=float(progress) if progress is not None else None,
            error=data.get("error") or None,
            status_message=data.get("statusMessage") or None,
            api_query_count=data.get("apiQueryCount"),
            phases=tuple(SyncPhase.from_dict(p) for p in data.get("phases") or []),
            current_phase=data.get("currentPhase") or None,
            has_partial_sync=bool(data.get("hasPartialSync")),
            partial_sync_progress=(
                PartialSyncProgress(
                    completed=int(partial["completed"]),
                    total=int(partial["total"]),
                )
                if partial
                else None
            ),
            stats=SyncStats.from_dict(stats) if stats else None,
            syncing_project_id=data.get("syncingProjectId") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire format (camelCase keys, epoch milliseconds)."""
        stats = self.stats
        partial = self.partial_sync_progress
        return {
            "status": self.status.value,
            "isRunning": self.is_running,
            "lastSyncTime": (
                int(self.last_sync_time.timestamp() * 1000)
                if self.last_sync_time
                else None
            ),
            "progressPercent": self.progress_percent,
            "error": self.error,
            "statusMessage": self.status_message,
            "apiQueryCount": self.api_query_count,
            "phases": [
                {"phase": p.phase, "label": p.label, "status": p.status.value}
                for p in self.phases
            ],
            "currentPhase": self.current_phase,
            "hasPartialSync": self.has_partial_sync,
            "partialSyncProgress": (
                {"completed": partial.completed, "total": partial.total}
                if partial
                else None
            ),
            "stats": (
                {
                    "startedIssuesCount": stats.started_issues_count,
                    "totalProjectsCount": stats.total_projects_count,
                    "currentProjectIndex": stats.current_project_index,
                    "currentProjectName": stats.current_project_name,
                    "projectIssuesCount": stats.project_issues_count,
                    "newCount": stats.new_count,
                    "updatedCount": stats.updated_count,
                }
                if stats
                else None
            ),
            "syncingProjectId": self.syncing_project_id,
        }

    def as_optimistic(self, project_id: str | None = None) -> SyncStatus:
        """Derive the locally asserted "sync started" snapshot from this one.

        Keeps the last sync time and phase list so consumers can still
        detect the completion edge against them.

        Args:
            project_id: Project the triggered sync is scoped to.

        Returns:
            A new syncing snapshot flagged as optimistic.
        """
        return replace(
            self,
            status=SyncState.SYNCING,
            is_running=True,
            error=None,
            progress_percent=0.0,
            syncing_project_id=project_id,
            current_phase=None,
            has_partial_sync=False,
            partial_sync_progress=None,
            stats=SyncStats(),
            status_message="Starting sync...",
            api_query_count=0,
            optimistic=True,
        )


@dataclass
class SyncOptions:
    """Options forwarded to the sync service when starting a sync.

    These are not interpreted by the client.
    """

    phases: list[str] = field(default_factory=list)
    is_full_sync: bool = True
    deep_history_sync: bool = False
    incremental_sync: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to request body format."""
        return {
            "phases": list(self.phases),
            "isFullSync": self.is_full_sync,
            "deepHistorySync": self.deep_history_sync,
            "incrementalSync": self.incremental_sync,
        }
