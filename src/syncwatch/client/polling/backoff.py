"""Exponential backoff for failed status polls.

This module provides:
- compute_backoff_delay: Pure failure-count to delay mapping
- ExponentialBackoff: Failure counter owned by the status store
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# Default backoff configuration
DEFAULT_INITIAL_BACKOFF = 2.0  # seconds
DEFAULT_MAX_BACKOFF = 30.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0


def compute_backoff_delay(
    failure_count: int,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
) -> float:
    """Compute the retry delay after a number of consecutive failures.

    The delay is ``initial * multiplier ** (failure_count - 1)``,
    capped at ``max_backoff``.

    Args:
        failure_count: Number of consecutive failures, starting at 1.
        initial_backoff: Delay after the first failure, in seconds.
        max_backoff: Maximum delay, in seconds.
        backoff_multiplier: Multiplier for each further failure.

    Returns:
        Delay in seconds.

    Raises:
        ValueError: If failure_count is lower than 1.
    """
    if failure_count < 1:
        raise ValueError(f"failure_count must be >= 1, got {failure_count}")

    # Stop multiplying once the cap is reached so huge counts cannot overflow
    delay = initial_backoff
    for _ in range(failure_count - 1):
        delay *= backoff_multiplier
        if delay >= max_backoff:
            return max_backoff
    return min(delay, max_backoff)


class ExponentialBackoff:
    """Consecutive-failure counter with exponential delays.

    Usage:
        backoff = ExponentialBackoff()
        delay = backoff.record_failure()  # 2.0
        delay = backoff.record_failure()  # 4.0
        backoff.record_success()          # back to zero failures
    """

    def __init__(
        self,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    ) -> None:
        """Initialize the backoff.

        Args:
            initial_backoff: Delay after the first failure, in seconds.
            max_backoff: Maximum delay, in seconds.
            backoff_multiplier: Multiplier for each further failure.
        """
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._backoff_multiplier = backoff_multiplier
        self._failure_count = 0

    @property
    def failure_count(self) -> int:
        """Get the number of consecutive failures."""
        return self._failure_count

    @property
    def max_backoff(self) -> float:
        """Get the delay cap."""
        return self._max_backoff

    def delay_for(self, failure_count: int) -> float:
        """Get the delay for a given number of consecutive failures."""
        return compute_backoff_delay(
            failure_count,
            initial_backoff=self._initial_backoff,
            max_backoff=self._max_backoff,
            backoff_multiplier=self._backoff_multiplier,
        )

    def record_failure(self) -> float:
        """Record a failure and return the delay before the next retry."""
        self._failure_count += 1
        return self.delay_for(self._failure_count)

    def record_success(self) -> None:
        """Record a success and reset the failure count."""
        if self._failure_count:
            logger.debug("Backoff reset after %d failures", self._failure_count)
        self._failure_count = 0
