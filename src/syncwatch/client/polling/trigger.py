"""Start-sync requests and their reconciliation with the status store.

This module provides:
- SyncTrigger: Issues start-sync requests, publishes the optimistic
  "syncing" state, classifies request errors, and keeps per-scope local
  state (syncing flag, safety timeout, pending error)

Request outcomes:
    2xx       → optimistic syncing published, progress flows from polling
    409 / 429 → informational message, forced poll, no backoff
    other     → error message, forced poll; the error is kept locally
                unless a poll brings better information within the grace period

A scope is None for a full sync or a project id for a project sync.
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx

from syncwatch.client.api import APIError, ConflictError, RateLimitError
from syncwatch.client.polling.types import (
    Notification,
    NotificationType,
    TriggerOutcome,
    TriggerResult,
)
from syncwatch.core.config import PollingConfig
from syncwatch.core.types import SyncState

if TYPE_CHECKING:
    from syncwatch.client.api import HTTPClient, StartSyncResponse
    from syncwatch.client.auth import AuthSignal
    from syncwatch.client.polling.scheduler import Scheduler, TimerHandle
    from syncwatch.client.polling.store import SyncStatusStore
    from syncwatch.client.polling.types import NotifyCallback
    from syncwatch.core.status import SyncOptions, SyncStatus

logger = logging.getLogger(__name__)

Scope = str | None


def _scope_label(scope: Scope) -> str:
    return f"project {scope}" if scope else "full sync"


class SyncTrigger:
    """Initiates syncs and tracks their local state per scope.

    Usage:
        trigger = SyncTrigger(client, store, auth, scheduler, notify=show)
        result = trigger.trigger_sync(SyncOptions(phases=["active_projects"]))
        if result.started:
            ...

        trigger.trigger_project_sync("proj-123")
        trigger.is_syncing("proj-123")  # True until completion, error or timeout
    """

    def __init__(
        self,
        client: HTTPClient,
        store: SyncStatusStore,
        auth: AuthSignal,
        scheduler: Scheduler,
        config: PollingConfig | None = None,
        notify: NotifyCallback | None = None,
    ) -> None:
        """Initialize the trigger.

        Args:
            client: HTTP client for start-sync requests.
            store: Status store receiving optimistic updates.
            auth: Authentication signal checked before each request.
            scheduler: Timer capability for safety and grace timeouts.
            config: Timeout settings.
            notify: Sink for user-visible messages.
        """
        self._client = client
        self._store = store
        self._auth = auth
        self._scheduler = scheduler
        self._config = config or PollingConfig()
        self._notify = notify

        # Scopes with a sync started from here, and their safety timers
        self._syncing: dict[Scope, TimerHandle | None] = {}
        # Failed triggers waiting for the grace period to expire
        self._pending_errors: dict[Scope, tuple[str, TimerHandle]] = {}
        # Errors kept after the grace period
        self._errors: dict[Scope, str] = {}

        self._listeners: list[Callable[[Scope], None]] = []
        self._lock = threading.RLock()

        self._unsubscribe = store.subscribe(self._on_status)

    # === Local state ===

    def is_syncing(self, project_id: str | None = None) -> bool:
        """Check if a sync started from here is still considered running."""
        return project_id in self._syncing

    def local_error(self, project_id: str | None = None) -> str | None:
        """Get the error kept for a scope after a failed trigger."""
        return self._errors.get(project_id)

    def add_listener(self, callback: Callable[[Scope], None]) -> Callable[[], None]:
        """Register a callback for local state changes.

        The callback receives the scope whose state changed.

        Returns:
            Function removing the callback.
        """
        with self._lock:
            self._listeners.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return remove

    def close(self) -> None:
        """Detach from the store and cancel every local timer."""
        self._unsubscribe()
        with self._lock:
            for handle in self._syncing.values():
                if handle is not None:
                    self._scheduler.cancel(handle)
            for _, handle in self._pending_errors.values():
                self._scheduler.cancel(handle)
            self._syncing.clear()
            self._pending_errors.clear()

    # === Triggers ===

    def trigger_sync(
        self,
        options: SyncOptions | None = None,
        admin_password: str | None = None,
    ) -> TriggerResult:
        """Start a full or partial sync.

        Args:
            options: Sync options, forwarded unchanged.
            admin_password: Credential required by the server.

        Returns:
            Outcome of the request.
        """
        return self._trigger(
            None, lambda: self._client.start_sync(options, admin_password)
        )

    def trigger_project_sync(self, project_id: str) -> TriggerResult:
        """Start a sync of a single project.

        Args:
            project_id: Project to sync.

        Returns:
            Outcome of the request.
        """
        return self._trigger(
            project_id, lambda: self._client.start_project_sync(project_id)
        )

    def _trigger(
        self, scope: Scope, send: Callable[[], StartSyncResponse]
    ) -> TriggerResult:
        rejection = self._check_preconditions(scope)
        if rejection is not None:
            logger.info("Sync request for %s rejected: %s", _scope_label(scope), rejection)
            self._emit(NotificationType.WARNING, rejection)
            return TriggerResult(TriggerOutcome.REJECTED, rejection, scope)

        logger.info("Requesting %s", _scope_label(scope))
        try:
            response = send()
        except ConflictError as e:
            return self._contention(scope, TriggerOutcome.BUSY, e)
        except RateLimitError as e:
            return self._contention(scope, TriggerOutcome.RATE_LIMITED, e)
        except (APIError, httpx.HTTPError) as e:
            return self._failure(scope, e)

        self._mark_syncing(scope)
        self._store.set_optimistic_syncing(scope)
        self._emit(NotificationType.INFO, response.message)
        return TriggerResult(TriggerOutcome.STARTED, response.message, scope)

    def _check_preconditions(self, scope: Scope) -> str | None:
        """Return why a request must not be sent, or None."""
        if not self._auth.authenticated:
            return "Not authenticated"
        if self.is_syncing(scope):
            return "Sync already in progress"

        status = self._store.snapshot
        if status is None or not status.is_active:
            return None
        if scope is None:
            return "Sync already in progress"
        # A full sync covers every project
        if status.syncing_project_id in (None, scope):
            return "Sync already in progress"
        return None

    def _contention(
        self, scope: Scope, outcome: TriggerOutcome, error: APIError
    ) -> TriggerResult:
        """Handle 409/429: inform and reconcile, without backoff."""
        logger.info("Sync request for %s not accepted: %s", _scope_label(scope), error)
        self._emit(NotificationType.INFO, error.message)
        self._store.poll_now()
        return TriggerResult(outcome, error.message, scope)

    def _failure(self, scope: Scope, error: Exception) -> TriggerResult:
        """Handle a hard failure: surface it, then let a poll overrule it."""
        message = error.message if isinstance(error, APIError) else f"Network error: {error}"
        logger.warning("Sync request for %s failed: %s", _scope_label(scope), message)
        self._emit(NotificationType.ERROR, message)

        with self._lock:
            self._cancel_pending_error(scope)
            handle = self._scheduler.after(
                self._config.error_grace_period,
                functools.partial(self._on_grace_expired, scope, message),
            )
            self._pending_errors[scope] = (message, handle)

        self._store.poll_now()
        return TriggerResult(TriggerOutcome.FAILED, message, scope)

    # === Local flags and timers ===

    def _mark_syncing(self, scope: Scope) -> None:
        with self._lock:
            self._errors.pop(scope, None)
            self._cancel_pending_error(scope)
            handle = None
            if scope is not None:
                handle = self._scheduler.after(
                    self._config.project_safety_timeout,
                    functools.partial(self._on_safety_timeout, scope),
                )
            self._syncing[scope] = handle
        self._changed(scope)

    def _clear_syncing(self, scope: Scope) -> None:
        with self._lock:
            if scope not in self._syncing:
                return
            handle = self._syncing.pop(scope)
            if handle is not None:
                self._scheduler.cancel(handle)
        self._changed(scope)

    def _cancel_pending_error(self, scope: Scope) -> None:
        pending = self._pending_errors.pop(scope, None)
        if pending is not None:
            self._scheduler.cancel(pending[1])

    def _on_safety_timeout(self, scope: Scope) -> None:
        with self._lock:
            if scope not in self._syncing:
                return
            self._syncing.pop(scope)
        logger.warning(
            "No completion observed for %s after %.0fs, clearing local syncing flag",
            _scope_label(scope),
            self._config.project_safety_timeout,
        )
        self._changed(scope)

    def _on_grace_expired(self, scope: Scope, message: str) -> None:
        with self._lock:
            pending = self._pending_errors.get(scope)
            if pending is None or pending[0] != message:
                return
            del self._pending_errors[scope]
            self._errors[scope] = message
        logger.debug("Keeping local error for %s: %s", _scope_label(scope), message)
        self._changed(scope)

    # === Store observation ===

    def _on_status(self, status: SyncStatus) -> None:
        """Resolve local state against each published snapshot."""
        if status.optimistic:
            return

        finished: list[Scope] = []
        superseded: list[Scope] = []
        with self._lock:
            for scope in self._syncing:
                if status.status == SyncState.ERROR or not status.is_active:
                    finished.append(scope)
            for scope in self._pending_errors:
                if status.status == SyncState.ERROR or (
                    status.is_active and status.syncing_project_id in (None, scope)
                ):
                    superseded.append(scope)
            for scope in superseded:
                self._cancel_pending_error(scope)

        for scope in finished:
            self._clear_syncing(scope)
        for scope in superseded:
            logger.debug("Poll superseded the trigger error for %s", _scope_label(scope))

    # === Notifications ===

    def _emit(self, kind: NotificationType, message: str) -> None:
        if self._notify is None:
            return
        try:
            self._notify(Notification(title="Sync", message=message, type=kind))
        except Exception:
            logger.exception("Notification sink failed")

    def _changed(self, scope: Scope) -> None:
        for listener in list(self._listeners):
            try:
                listener(scope)
            except Exception:
                logger.exception("Trigger listener failed")
