"""Configure command for the syncwatch CLI.

Commands:
- configure: Store the server URL and session in the config file
"""

from __future__ import annotations

import click

from syncwatch.client.cli.config import get_config_file, load_config, save_config


@click.command()
@click.option("--server-url", prompt="Server URL", help="Base URL of the sync service.")
@click.option(
    "--session-token",
    prompt="Session token (leave empty for none)",
    default="",
    hide_input=True,
    help="Value of the session cookie.",
)
@click.option("--syncing-interval", type=float, default=None, help="Poll interval while syncing, in seconds.")
@click.option("--idle-interval", type=float, default=None, help="Poll interval while idle, in seconds.")
@click.option("--check/--no-check", default=True, help="Check the session against the server.")
def configure(
    server_url: str,
    session_token: str,
    syncing_interval: float | None,
    idle_interval: float | None,
    check: bool,
) -> None:
    """Configure the sync service connection.

    Settings are saved to ~/.syncwatch/config.json.
    """
    from syncwatch.client.api import HTTPClient
    from syncwatch.core.config import PollingConfig, ServerConfig

    server_config = ServerConfig(server_url=server_url, session_token=session_token or None)

    config = load_config()
    config["server_url"] = server_config.server_url
    if session_token:
        config["session_token"] = session_token
    else:
        config.pop("session_token", None)
    if syncing_interval is not None:
        config["syncing_interval"] = str(syncing_interval)
    if idle_interval is not None:
        config["idle_interval"] = str(idle_interval)

    try:
        PollingConfig(
            syncing_interval=float(config.get("syncing_interval", 1.0)),
            idle_interval=float(config.get("idle_interval", 5.0)),
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    save_config(config)
    click.echo(f"Configuration saved to {get_config_file()}")

    if not server_config.is_secure:
        click.echo("Warning: Server URL does not use HTTPS.", err=True)

    if check:
        with HTTPClient(server_config) as client:
            if client.check_auth():
                click.echo("Session accepted by the server.")
            else:
                click.echo("Warning: The server did not accept this session.", err=True)
