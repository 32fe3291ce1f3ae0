"""Central sync status poller.

This module provides:
- SyncStatusStore: Single source of truth for the sync job status
- PollSchedule: The one armed poll timer and the cadence that produced it
- create_store / get_store / reset_store: Process-wide instance lifecycle

Architecture:
    Sync service ──GET /api/sync/status──► SyncStatusStore ──► subscribers
                                                 ▲
                              SyncTrigger ───────┘ (optimistic overlay)

Every UI surface subscribes to the same store, so there is one poll stream
no matter how many consumers are watching. The store re-arms a single
one-shot timer after each response: fast while a sync runs, slow while
idle, and with exponential backoff after failures.
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from syncwatch.client.api import APIError, AuthenticationError
from syncwatch.client.polling.backoff import ExponentialBackoff
from syncwatch.core.config import PollingConfig
from syncwatch.core.status import SyncStatus
from syncwatch.core.types import PollCadence

if TYPE_CHECKING:
    from syncwatch.client.api import HTTPClient
    from syncwatch.client.auth import AuthSignal
    from syncwatch.client.polling.scheduler import Scheduler, TimerHandle
    from syncwatch.client.polling.types import StatusCallback

logger = logging.getLogger(__name__)


class StoreLifecycleError(RuntimeError):
    """The process-wide store was created twice or used before creation."""


@dataclass(frozen=True)
class PollSchedule:
    """The currently armed poll timer.

    Attributes:
        handle: Scheduler handle, used to cancel the timer.
        cadence: Rule that produced this timer.
        delay: Delay the timer was armed with, in seconds.
        generation: Monotonic counter; a firing timer whose generation is
            not the current one is stale and ignored.
    """

    handle: TimerHandle
    cadence: PollCadence
    delay: float
    generation: int


class SyncStatusStore:
    """Single authoritative poller for the sync job status.

    Usage:
        store = SyncStatusStore(client, scheduler, auth)
        unsubscribe = store.subscribe(lambda status: print(status.status))
        store.start()

        # After a sync was accepted by the server
        store.set_optimistic_syncing()

        # Stop when done
        store.stop()
    """

    def __init__(
        self,
        client: HTTPClient,
        scheduler: Scheduler,
        auth: AuthSignal,
        config: PollingConfig | None = None,
        backoff: ExponentialBackoff | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: HTTP client used to fetch the status.
            scheduler: Timer capability.
            auth: Authentication signal; polling stops when it turns false.
            config: Polling intervals and backoff settings.
            backoff: Backoff calculator (built from config if omitted).
        """
        self._client = client
        self._scheduler = scheduler
        self._auth = auth
        self._config = config or PollingConfig()
        self._backoff = backoff or ExponentialBackoff(
            initial_backoff=self._config.backoff_initial,
            max_backoff=self._config.backoff_max,
            backoff_multiplier=self._config.backoff_multiplier,
        )

        # Snapshots
        self._authoritative: SyncStatus | None = None
        self._overlay: SyncStatus | None = None
        self._published: SyncStatus | None = None

        # Subscribers
        self._listeners: list[StatusCallback] = []
        self._unauthenticated_listeners: list[Callable[[], None]] = []

        # Polling state
        self._running = False
        self._in_flight = False
        self._schedule: PollSchedule | None = None
        self._generation = 0
        # Bumped by each optimistic overlay; polls sent earlier cannot confirm it
        self._overlay_epoch = 0
        self._lock = threading.RLock()

        self._auth_unsubscribe = auth.subscribe(self._on_auth_changed)

    # === Read-only state ===

    @property
    def snapshot(self) -> SyncStatus | None:
        """Get the last published snapshot (may be optimistic)."""
        return self._published

    @property
    def authoritative(self) -> SyncStatus | None:
        """Get the last snapshot confirmed by a poll."""
        return self._authoritative

    @property
    def running(self) -> bool:
        """Check if the store is polling."""
        return self._running

    @property
    def failure_count(self) -> int:
        """Get the number of consecutive failed polls."""
        return self._backoff.failure_count

    @property
    def cadence(self) -> PollCadence | None:
        """Get the cadence of the armed timer, None if no timer is armed."""
        schedule = self._schedule
        return schedule.cadence if schedule else None

    @property
    def next_delay(self) -> float | None:
        """Get the delay of the armed timer, None if no timer is armed."""
        schedule = self._schedule
        return schedule.delay if schedule else None

    @property
    def has_active_timer(self) -> bool:
        """Check if a poll timer is armed."""
        return self._schedule is not None

    @property
    def has_overlay(self) -> bool:
        """Check if an optimistic snapshot is waiting for a poll."""
        return self._overlay is not None

    # === Subscriptions ===

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """Register a callback for every published snapshot.

        If a snapshot was already published, the callback receives it
        immediately. Unsubscribing does not stop polling.

        Args:
            callback: Called with each new SyncStatus.

        Returns:
            Function removing the callback.
        """
        with self._lock:
            self._listeners.append(callback)
            current = self._published
            if current is not None:
                self._deliver(callback, current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def on_unauthenticated(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback for when a poll is rejected with 401.

        Returns:
            Function removing the callback.
        """
        with self._lock:
            self._unauthenticated_listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._unauthenticated_listeners:
                    self._unauthenticated_listeners.remove(callback)

        return unsubscribe

    # === Lifecycle ===

    def start(self) -> None:
        """Start polling: poll once now, then keep the timer armed.

        Does nothing if already running or not authenticated.
        """
        with self._lock:
            if self._running:
                return
            if not self._auth.authenticated:
                logger.debug("Not starting status polling: not authenticated")
                return
            self._running = True
            logger.info("Status polling started")

        self._poll_once()

    def stop(self) -> None:
        """Stop polling and cancel any armed timer."""
        with self._lock:
            was_running = self._running
            self._running = False
            self._cancel_timer()
        if was_running:
            logger.info("Status polling stopped")

    def close(self) -> None:
        """Stop polling and detach from the auth signal."""
        self.stop()
        self._auth_unsubscribe()

    def poll_now(self) -> None:
        """Poll immediately, replacing the armed timer.

        Used to reconcile the displayed state with the server after a
        rejected sync request. While stopped, polls once without re-arming.
        """
        self._poll_once()

    def set_optimistic_syncing(self, project_id: str | None = None) -> None:
        """Publish a "syncing" snapshot before any poll confirms it.

        The overlay is discarded by the next poll, successful or not.

        Args:
            project_id: Project the sync is scoped to, None for a full sync.
        """
        with self._lock:
            base = self._published or self._authoritative or SyncStatus()
            overlay = base.as_optimistic(project_id)
            self._overlay = overlay
            self._overlay_epoch += 1
            self._publish(overlay)

            # Switch to the fast cadence now rather than after the next slow tick
            if (
                self._running
                and not self._in_flight
                and self._backoff.failure_count == 0
            ):
                self._arm(PollCadence.SYNCING_FAST)

    # === Polling ===

    def _on_timer(self, generation: int) -> None:
        """Timer callback."""
        with self._lock:
            schedule = self._schedule
            if schedule is None or schedule.generation != generation:
                logger.debug("Ignoring stale poll timer (generation %d)", generation)
                return
            self._schedule = None

        self._poll_once()

    def _poll_once(self) -> None:
        """Issue one status request and handle its outcome."""
        with self._lock:
            if self._in_flight:
                logger.debug("Status poll already in flight, skipping")
                return
            self._in_flight = True
            epoch = self._overlay_epoch
            self._cancel_timer()

        status: SyncStatus | None = None
        error: Exception | None = None
        unauthenticated = False
        try:
            status = self._client.get_status()
        except AuthenticationError:
            unauthenticated = True
        except (APIError, httpx.HTTPError) as e:
            error = e
        except Exception as e:
            logger.warning("Unexpected status poll error: %s", e)
            logger.debug("Full traceback:", exc_info=True)
            error = e

        with self._lock:
            self._in_flight = False
            stale = self._overlay is not None and epoch != self._overlay_epoch
            if unauthenticated:
                self._handle_unauthenticated()
            elif status is None:
                self._handle_failure(error, stale)
            elif stale:
                self._handle_stale_success(status)
            else:
                self._handle_success(status)

    def _handle_success(self, status: SyncStatus) -> None:
        """Publish a polled snapshot and re-arm at the matching cadence."""
        self._backoff.record_success()
        self._authoritative = status
        self._overlay = None
        self._publish(status)

        if self._running:
            cadence = (
                PollCadence.SYNCING_FAST if status.is_active else PollCadence.IDLE_SLOW
            )
            self._arm(cadence)

    def _handle_stale_success(self, status: SyncStatus) -> None:
        """Handle a response to a request sent before the current overlay.

        The response predates the triggered sync, so it neither replaces
        nor confirms the overlay. It is recorded as authoritative but not
        published, and the next poll follows at the fast cadence.
        """
        logger.debug("Status response predates the optimistic overlay, keeping overlay")
        self._backoff.record_success()
        self._authoritative = status

        if self._running:
            self._arm(PollCadence.SYNCING_FAST)

    def _handle_failure(self, error: Exception | None, stale: bool = False) -> None:
        """Keep the last snapshot and schedule a backoff retry."""
        delay = self._backoff.record_failure()
        # Subscribers keep the last snapshot they received
        if not stale:
            self._overlay = None

        if self._running:
            logger.debug(
                "Status poll failed (%s), retrying in %.1fs (failure %d)",
                error,
                delay,
                self._backoff.failure_count,
            )
            self._arm(PollCadence.BACKOFF, delay)
        else:
            logger.debug("Status poll failed (%s)", error)

    def _handle_unauthenticated(self) -> None:
        """Stop polling for good until start() is called again."""
        logger.info("Status poll rejected (401), stopping status polling")
        self._running = False
        self._cancel_timer()
        self._overlay = None

        for listener in list(self._unauthenticated_listeners):
            try:
                listener()
            except Exception:
                logger.exception("Unauthenticated listener failed")
        self._auth.set(False)

    def _on_auth_changed(self, authenticated: bool) -> None:
        """React to the external authentication signal."""
        if authenticated:
            logger.debug("Authenticated again; status polling resumes on start()")
            return
        self.stop()

    # === Timers ===

    def _arm(self, cadence: PollCadence, delay: float | None = None) -> None:
        """Replace the armed timer with a new one. Caller holds the lock."""
        self._cancel_timer()
        if delay is None:
            delay = (
                self._config.syncing_interval
                if cadence == PollCadence.SYNCING_FAST
                else self._config.idle_interval
            )
        self._generation += 1
        handle = self._scheduler.after(
            delay, functools.partial(self._on_timer, self._generation)
        )
        self._schedule = PollSchedule(
            handle=handle,
            cadence=cadence,
            delay=delay,
            generation=self._generation,
        )

    def _cancel_timer(self) -> None:
        """Cancel the armed timer, if any. Caller holds the lock."""
        schedule = self._schedule
        if schedule is None:
            return
        self._schedule = None
        self._scheduler.cancel(schedule.handle)

    # === Fan-out ===

    def _publish(self, status: SyncStatus) -> None:
        """Deliver a snapshot to every subscriber. Caller holds the lock."""
        self._published = status
        for listener in list(self._listeners):
            self._deliver(listener, status)

    def _deliver(self, listener: StatusCallback, status: SyncStatus) -> None:
        try:
            listener(status)
        except Exception:
            logger.exception("Status subscriber failed")


# =============================================================================
# Process-wide instance
# =============================================================================

_store: SyncStatusStore | None = None
_store_lock = threading.Lock()


def create_store(
    client: HTTPClient,
    scheduler: Scheduler,
    auth: AuthSignal,
    config: PollingConfig | None = None,
) -> SyncStatusStore:
    """Create the process-wide status store.

    Raises:
        StoreLifecycleError: If the store was already created.
    """
    global _store
    with _store_lock:
        if _store is not None:
            raise StoreLifecycleError("Status store already created")
        _store = SyncStatusStore(client, scheduler, auth, config)
        return _store


def get_store() -> SyncStatusStore:
    """Get the process-wide status store.

    Raises:
        StoreLifecycleError: If create_store() was not called.
    """
    if _store is None:
        raise StoreLifecycleError("Status store not created")
    return _store


def reset_store() -> None:
    """Stop and forget the process-wide status store."""
    global _store
    with _store_lock:
        if _store is not None:
            _store.close()
        _store = None
