"""Command-line interface for abathwa.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Save the remote store connection settings
- sync: Refresh cached collections from the remote store
- status: Show what the local cache holds
- show: Print the cached records of a collection
- rules: List the built-in rules
- process: Run one record through the rule engine
- flow: Describe where a payment stands in the escrow flow
"""

from __future__ import annotations

import logging

import click

from abathwa.client.cli.config import (
    get_cache_path,
    get_config_dir,
    get_config_file,
    get_gateway_config,
    load_config,
    save_config,
)
from abathwa.client.cli.configure import configure
from abathwa.client.cli.rules import flow, process, rules
from abathwa.client.cli.sync import show, status, sync


@click.group()
@click.version_option(package_name="abathwa")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """abathwa - investment platform sync and rule engine client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Configuration
cli.add_command(configure)

# Sync commands
cli.add_command(sync)
cli.add_command(status)
cli.add_command(show)

# Rule commands
cli.add_command(rules)
cli.add_command(process)
cli.add_command(flow)


def main() -> None:
    """Entry point for the abathwa CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_cache_path",
    "get_config_dir",
    "get_config_file",
    "get_gateway_config",
    "load_config",
    "save_config",
]
