"""Shared types for syncwatch.

This module defines enums used across the client.
"""

from __future__ import annotations

from enum import Enum


class SyncState(str, Enum):
    """State of the server-side sync job.

    Reported by the status endpoint and used by every consumer
    of the status store.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


class PhaseStatus(str, Enum):
    """Progress state of one sync phase."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class PollCadence(str, Enum):
    """Which rule produced the currently armed poll timer."""

    SYNCING_FAST = "syncing-fast"
    IDLE_SLOW = "idle-slow"
    BACKOFF = "backoff"
