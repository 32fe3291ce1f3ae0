"""Shared types for status polling and sync triggering.

This module provides:
- TriggerOutcome, TriggerResult: Result of a start-sync request
- NotificationType, Notification: User-visible messages
- DataStore: Contract of the dependent data cache
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from syncwatch.core.status import SyncStatus


class TriggerOutcome(str, Enum):
    """Outcome of a start-sync request."""

    STARTED = "started"
    REJECTED = "rejected"  # Precondition failed, no request sent
    BUSY = "busy"  # 409, a sync is already running
    RATE_LIMITED = "rate_limited"  # 429
    FAILED = "failed"


@dataclass(frozen=True)
class TriggerResult:
    """Result of a start-sync request."""

    outcome: TriggerOutcome
    message: str
    project_id: str | None = None

    @property
    def started(self) -> bool:
        """Check if the sync was accepted by the server."""
        return self.outcome == TriggerOutcome.STARTED


class NotificationType(Enum):
    """Type of notification."""

    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class Notification:
    """Represents a user-visible message."""

    title: str
    message: str
    type: NotificationType = NotificationType.INFO


class DataStore(Protocol):
    """Contract of the data cache reloaded after a sync completes."""

    def load(self) -> None:
        """Reload the whole dataset."""

    def refresh_project(self, project_id: str) -> None:
        """Reload a single project."""


# Type alias for status subscriber callbacks
StatusCallback = Callable[[SyncStatus], None]

# Type alias for notification sinks
NotifyCallback = Callable[[Notification], None]
