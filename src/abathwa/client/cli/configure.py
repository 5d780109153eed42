"""Configure command for the abathwa CLI.

Commands:
- configure: Save the remote store connection settings
"""

from __future__ import annotations

import click

from abathwa.client.cli.config import get_config_file, load_config, save_config


@click.command()
@click.option("--url", required=True, help="Base URL of the remote store.")
@click.option("--api-key", required=True, help="Public API key.")
@click.option("--token", default=None, help="User access token (optional).")
@click.option("--timeout", type=float, default=30.0, show_default=True, help="Request timeout in seconds.")
def configure(url: str, api_key: str, token: str | None, timeout: float) -> None:
    """Save the remote store connection settings."""
    config = load_config()
    config["url"] = url.rstrip("/")
    config["api_key"] = api_key
    if token:
        config["token"] = token
    else:
        config.pop("token", None)
    config["timeout"] = str(timeout)
    save_config(config)
    click.echo(f"Configuration saved to {get_config_file()}")
