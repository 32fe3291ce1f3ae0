"""Timer scheduling for the status store and the sync trigger.

This module provides:
- Scheduler: Protocol for one-shot timers (after/cancel)
- BackgroundTimerScheduler: APScheduler-backed implementation

All callbacks of a BackgroundTimerScheduler run on a single worker
thread, one at a time.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

logger = logging.getLogger(__name__)

# Opaque handle returned by Scheduler.after()
TimerHandle = Any


class Scheduler(Protocol):
    """One-shot timer capability."""

    def after(self, delay: float, fn: Callable[[], None]) -> TimerHandle:
        """Run fn once after delay seconds and return a cancellable handle."""

    def cancel(self, handle: TimerHandle) -> None:
        """Cancel a pending timer. Cancelling a fired timer is a no-op."""


class BackgroundTimerScheduler:
    """Scheduler running timers on an APScheduler background thread.

    Usage:
        scheduler = BackgroundTimerScheduler()
        handle = scheduler.after(5.0, poll)
        scheduler.cancel(handle)
        scheduler.shutdown()
    """

    def __init__(self) -> None:
        """Initialize the scheduler (started lazily on first timer)."""
        self._scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults={"misfire_grace_time": None, "coalesce": False},
            timezone=UTC,
        )

    @property
    def running(self) -> bool:
        """Check if the background thread is running."""
        return bool(self._scheduler.running)

    def start(self) -> None:
        """Start the background thread."""
        if self._scheduler.running:
            return
        self._scheduler.start()
        logger.debug("Timer scheduler started")

    def shutdown(self, wait: bool = False) -> None:
        """Stop the background thread and drop pending timers."""
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=wait)
        logger.debug("Timer scheduler stopped")

    def after(self, delay: float, fn: Callable[[], None]) -> TimerHandle:
        """Run fn once after delay seconds.

        Args:
            delay: Delay in seconds.
            fn: Callback to run on the scheduler thread.

        Returns:
            The APScheduler job, usable with cancel().
        """
        self.start()
        run_date = datetime.now(UTC) + timedelta(seconds=delay)
        return self._scheduler.add_job(
            fn,
            trigger=DateTrigger(run_date=run_date, timezone=UTC),
            name=getattr(fn, "__name__", "timer"),
        )

    def cancel(self, handle: TimerHandle) -> None:
        """Cancel a pending timer."""
        # The job is gone once it has fired
        with contextlib.suppress(JobLookupError):
            handle.remove()
