"""Configuration utilities for the syncwatch CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from syncwatch.core.config import PollingConfig, ServerConfig


def get_config_dir() -> Path:
    """Get the configuration directory for syncwatch.

    Returns:
        Path to ~/.syncwatch.
    """
    return Path.home() / ".syncwatch"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_server_config() -> ServerConfig:
    """Build the server configuration from the config file.

    Exits with an error message if the CLI was never configured.
    """
    config = load_config()
    if not config.get("server_url"):
        click.echo("Error: Not configured. Run 'syncwatch configure' first.", err=True)
        sys.exit(1)
    return ServerConfig(
        server_url=config["server_url"],
        session_token=config.get("session_token") or None,
    )


def get_polling_config() -> PollingConfig:
    """Build the polling configuration from the config file."""
    config = load_config()
    kwargs: dict[str, float] = {}
    for key in ("syncing_interval", "idle_interval"):
        if config.get(key):
            kwargs[key] = float(config[key])
    return PollingConfig(**kwargs)


class EchoHandler(logging.Handler):
    """Logging handler writing through click, so output goes to the current stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def setup_logging(verbose: bool) -> None:
    """Send syncwatch log records to stderr."""
    handler = EchoHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    syncwatch_logger = logging.getLogger("syncwatch")
    for existing in syncwatch_logger.handlers[:]:
        syncwatch_logger.removeHandler(existing)
    syncwatch_logger.addHandler(handler)
    syncwatch_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    syncwatch_logger.propagate = False
