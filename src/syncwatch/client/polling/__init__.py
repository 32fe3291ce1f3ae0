"""Sync status polling and reconciliation.

Architecture:
    SyncTrigger → SyncStatusStore → subscribers
                        │
                        ├──► CompletionDetector → DataStore.load()
                        ├──► ScopedSyncTracker  → DataStore.refresh_project()
                        └──► views (button, progress, last sync, project)

Components:
- **ExponentialBackoff**: Failure count to retry delay
- **Scheduler**: One-shot timer capability (BackgroundTimerScheduler in production)
- **SyncStatusStore**: The one poller; publishes immutable SyncStatus snapshots
- **SyncTrigger**: Start-sync requests, optimistic state, error classification
- **CompletionDetector / ScopedSyncTracker**: Reload exactly once per completed sync
- **Views**: Read-only per-surface state
"""

from syncwatch.client.polling.backoff import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    ExponentialBackoff,
    compute_backoff_delay,
)
from syncwatch.client.polling.completion import (
    CompletionDetector,
    ObservedState,
    ScopedSyncTracker,
    reload_on_completion,
)
from syncwatch.client.polling.scheduler import (
    BackgroundTimerScheduler,
    Scheduler,
    TimerHandle,
)
from syncwatch.client.polling.store import (
    PollSchedule,
    StoreLifecycleError,
    SyncStatusStore,
    create_store,
    get_store,
    reset_store,
)
from syncwatch.client.polling.trigger import SyncTrigger
from syncwatch.client.polling.types import (
    DataStore,
    Notification,
    NotificationType,
    NotifyCallback,
    StatusCallback,
    TriggerOutcome,
    TriggerResult,
)
from syncwatch.client.polling.views import (
    LastSyncView,
    ProjectSyncView,
    StatusView,
    SyncButtonView,
    SyncProgressView,
)

__all__ = [
    # Backoff
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_INITIAL_BACKOFF",
    "DEFAULT_MAX_BACKOFF",
    "ExponentialBackoff",
    "compute_backoff_delay",
    # Scheduling
    "BackgroundTimerScheduler",
    "Scheduler",
    "TimerHandle",
    # Store
    "PollSchedule",
    "StoreLifecycleError",
    "SyncStatusStore",
    "create_store",
    "get_store",
    "reset_store",
    # Trigger
    "SyncTrigger",
    # Completion
    "CompletionDetector",
    "ObservedState",
    "ScopedSyncTracker",
    "reload_on_completion",
    # Types
    "DataStore",
    "Notification",
    "NotificationType",
    "NotifyCallback",
    "StatusCallback",
    "TriggerOutcome",
    "TriggerResult",
    # Views
    "LastSyncView",
    "ProjectSyncView",
    "StatusView",
    "SyncButtonView",
    "SyncProgressView",
]
