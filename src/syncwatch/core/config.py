"""Shared configuration classes for syncwatch.

This module defines the connection settings used by the HTTP client and the
timing settings used by the status store and the sync trigger.
"""

from __future__ import annotations

from dataclasses import dataclass

SESSION_COOKIE_NAME = "linear-bot-session"


@dataclass
class ServerConfig:
    """Configuration for connecting to the sync service.

    Attributes:
        server_url: Base URL of the server (e.g., "https://dashboard.example.com").
        session_token: Session cookie value, if the client is logged in.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    session_token: str | None = None
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def cookies(self) -> dict[str, str]:
        """Get the cookies to send with every request."""
        if not self.session_token:
            return {}
        return {SESSION_COOKIE_NAME: self.session_token}

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")


@dataclass
class PollingConfig:
    """Timing configuration for status polling and sync triggering.

    All values are in seconds.

    Attributes:
        syncing_interval: Poll interval while a sync is running.
        idle_interval: Poll interval while idle.
        backoff_initial: Retry delay after the first failed poll.
        backoff_max: Upper bound for the retry delay.
        backoff_multiplier: Growth factor between consecutive retries.
        project_safety_timeout: How long a project sync may stay locally
            "syncing" without any observed completion or error.
        error_grace_period: How long a failed trigger waits for a poll to
            bring better information before its error is kept.
    """

    syncing_interval: float = 1.0
    idle_interval: float = 5.0
    backoff_initial: float = 2.0
    backoff_max: float = 30.0
    backoff_multiplier: float = 2.0
    project_safety_timeout: float = 60.0
    error_grace_period: float = 5.0

    def __post_init__(self) -> None:
        """Validate timing values."""
        for name in (
            "syncing_interval",
            "idle_interval",
            "backoff_initial",
            "backoff_max",
            "project_safety_timeout",
            "error_grace_period",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be >= 1")
        if self.backoff_max < self.backoff_initial:
            raise ValueError("backoff_max must be >= backoff_initial")
