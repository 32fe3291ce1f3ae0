"""Tests for core configuration classes."""

from __future__ import annotations

import pytest

from syncwatch.core.config import SESSION_COOKIE_NAME, PollingConfig, ServerConfig


class TestServerConfig:
    """Tests for ServerConfig class."""

    def test_init_basic(self) -> None:
        """Should initialize with required fields."""
        config = ServerConfig(server_url="https://example.com")
        assert config.server_url == "https://example.com"
        assert config.session_token is None
        assert config.timeout == 30.0
        assert config.verify_ssl is True

    def test_init_custom_timeout(self) -> None:
        """Should accept custom timeout."""
        config = ServerConfig(server_url="https://example.com", timeout=60.0)
        assert config.timeout == 60.0

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from server URL."""
        config = ServerConfig(server_url="https://example.com/")
        assert config.server_url == "https://example.com"

    def test_cookies_with_session(self) -> None:
        """Should send the session cookie when a token is set."""
        config = ServerConfig(server_url="https://example.com", session_token="abc")
        assert config.cookies == {SESSION_COOKIE_NAME: "abc"}

    def test_cookies_without_session(self) -> None:
        """Should send no cookie without a token."""
        config = ServerConfig(server_url="https://example.com")
        assert config.cookies == {}

    def test_is_secure(self) -> None:
        """Should detect HTTPS."""
        assert ServerConfig(server_url="https://example.com").is_secure is True
        assert ServerConfig(server_url="http://localhost:3000").is_secure is False


class TestPollingConfig:
    """Tests for PollingConfig class."""

    def test_defaults(self) -> None:
        """Should use the documented defaults."""
        config = PollingConfig()
        assert config.syncing_interval == 1.0
        assert config.idle_interval == 5.0
        assert config.backoff_initial == 2.0
        assert config.backoff_max == 30.0
        assert config.backoff_multiplier == 2.0
        assert config.project_safety_timeout == 60.0
        assert config.error_grace_period == 5.0

    @pytest.mark.parametrize(
        "field", ["syncing_interval", "idle_interval", "backoff_initial", "error_grace_period"]
    )
    def test_rejects_non_positive(self, field: str) -> None:
        """Should reject zero or negative durations."""
        with pytest.raises(ValueError, match=field):
            PollingConfig(**{field: 0})

    def test_rejects_shrinking_multiplier(self) -> None:
        """Should reject a multiplier below 1."""
        with pytest.raises(ValueError, match="backoff_multiplier"):
            PollingConfig(backoff_multiplier=0.5)

    def test_rejects_cap_below_initial(self) -> None:
        """Should reject a cap lower than the initial delay."""
        with pytest.raises(ValueError, match="backoff_max"):
            PollingConfig(backoff_initial=10.0, backoff_max=5.0)
