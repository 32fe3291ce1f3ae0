"""Command-line interface for syncwatch.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Store the server URL and session
- status: Show the current sync status
- watch: Follow the sync status
- sync: Start a full, partial or project sync
"""

from __future__ import annotations

import click

from syncwatch.client.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
    setup_logging,
)
from syncwatch.client.cli.configure import configure
from syncwatch.client.cli.status import status, watch
from syncwatch.client.cli.sync import sync


@click.group()
@click.version_option(package_name="syncwatch")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """syncwatch - Follow and trigger server-side syncs."""
    setup_logging(verbose)


# Setup
cli.add_command(configure)

# Status commands
cli.add_command(status)
cli.add_command(watch)

# Sync commands
cli.add_command(sync)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
]
