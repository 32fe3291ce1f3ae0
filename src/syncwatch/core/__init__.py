"""Core module - Shared configuration and types."""

from syncwatch.core.config import SESSION_COOKIE_NAME, PollingConfig, ServerConfig
from syncwatch.core.types import PhaseStatus, PollCadence, SyncState

__all__ = [
    # Config
    "PollingConfig",
    "SESSION_COOKIE_NAME",
    "ServerConfig",
    # Types
    "PhaseStatus",
    "PollCadence",
    "SyncState",
]
