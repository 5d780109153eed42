"""Configuration utilities for the abathwa CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

from abathwa.core.config import GatewayConfig


def get_config_dir() -> Path:
    """Get the configuration directory for abathwa.

    Returns:
        Path to ~/.abathwa or equivalent.
    """
    return Path.home() / ".abathwa"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_cache_path() -> Path:
    """Get the path to the local cache database."""
    return get_config_dir() / "cache.db"


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


def get_gateway_config() -> GatewayConfig | None:
    """Build the gateway configuration from the config file.

    Returns:
        GatewayConfig, or None if no gateway is configured.
    """
    config = load_config()
    if not config.get("url") or not config.get("api_key"):
        return None
    return GatewayConfig(
        url=config["url"],
        api_key=config["api_key"],
        token=config.get("token") or None,
        timeout=float(config.get("timeout") or 30.0),
    )
