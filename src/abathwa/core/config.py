"""Shared configuration classes for abathwa.

This module defines configuration classes used by the gateway client and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass

REST_PREFIX = "/rest/v1"


@dataclass
class GatewayConfig:
    """Configuration for connecting to the remote relational store.

    The backing store exposes a PostgREST-style API: every table is
    reachable under ``/rest/v1/<table>``.

    Attributes:
        url: Base URL of the project (e.g., "https://xyz.supabase.co").
        api_key: Public API key sent with every request.
        token: Optional user access token. Falls back to the API key.
        timeout: Request timeout in seconds.
    """

    url: str
    api_key: str
    token: str | None = None
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Normalize base URL."""
        self.url = self.url.rstrip("/")

    @property
    def rest_url(self) -> str:
        """Get the REST endpoint root.

        Returns:
            Base URL with the REST prefix appended.
        """
        return f"{self.url}{REST_PREFIX}"

    @property
    def bearer(self) -> str:
        """Token used in the Authorization header."""
        return self.token or self.api_key

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if the gateway URL uses HTTPS.
        """
        return self.url.startswith("https://")
