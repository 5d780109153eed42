"""Remote data gateway for the backing relational store.

This module provides:
- RemoteGateway: the collection-keyed CRUD contract the sync engine relies on
- RestGateway: HTTP implementation against a PostgREST-style API
- GatewayError and subclasses: typed failures returned by the gateway

The gateway always reads whole collections. No pagination, filtering or
partial fetches are exposed.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from abathwa.client.schemas import Record
from abathwa.core.config import GatewayConfig
from abathwa.core.types import Collection

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base exception for gateway errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GatewayError):
    """Authentication failed or permission denied."""


class NotFoundError(GatewayError):
    """Record or table not found."""


class ConflictError(GatewayError):
    """Unique or foreign key constraint violated."""


class RemoteGateway(Protocol):
    """Generic CRUD contract over named collections."""

    def fetch_all(self, collection: Collection) -> list[Record]:
        """Return every record of a collection."""
        ...

    def insert(self, collection: Collection, data: Record) -> Record:
        """Insert a partial record and return the canonical stored row."""
        ...

    def update(self, collection: Collection, record_id: str, patch: Record) -> Record:
        """Patch one record and return the canonical stored row."""
        ...

    def delete(self, collection: Collection, record_id: str) -> None:
        """Delete one record."""
        ...


class RestGateway:
    """HTTP gateway for a PostgREST-style REST API."""

    def __init__(self, config: GatewayConfig) -> None:
        """Initialize the gateway.

        Args:
            config: Connection settings (URL, API key, token, timeout).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.rest_url,
            timeout=config.timeout,
            headers={
                "apikey": config.api_key,
                "Authorization": f"Bearer {config.bearer}",
            },
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> RestGateway:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code in (401, 403):
            raise AuthenticationError(_detail(response, "Not authorized"), response.status_code)
        if response.status_code == 404:
            raise NotFoundError(_detail(response, "Not found"), 404)
        if response.status_code == 409:
            raise ConflictError(_detail(response, "Conflict"), 409)
        if response.status_code >= 400:
            raise GatewayError(_detail(response, "Unknown error"), response.status_code)
        return response

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request, wrapping transport failures in GatewayError."""
        try:
            response = self._client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.RequestError as e:
            raise GatewayError(f"{method} {path} failed: {e}") from e
        return self._handle_response(response)

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the REST endpoint answers.

        Returns:
            True if the endpoint is reachable and authorized.
        """
        try:
            response = self._client.get("/")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Collection operations ===

    def fetch_all(self, collection: Collection) -> list[Record]:
        """Fetch a whole collection.

        Args:
            collection: Collection to read.

        Returns:
            List of records as returned by the server.
        """
        response = self._request(
            "GET", f"/{collection.value}", params={"select": "*"}
        )
        rows: list[Record] = response.json()
        logger.debug(f"Fetched {len(rows)} rows from {collection.value}")
        return rows

    def insert(self, collection: Collection, data: Record) -> Record:
        """Insert a record.

        Args:
            collection: Target collection.
            data: Partial record; server fills id and timestamps.

        Returns:
            The canonical stored record.
        """
        response = self._request(
            "POST",
            f"/{collection.value}",
            json=[data],
            headers={"Prefer": "return=representation"},
        )
        return _first_row(response, collection, None)

    def update(self, collection: Collection, record_id: str, patch: Record) -> Record:
        """Update a record by id.

        Args:
            collection: Target collection.
            record_id: Primary key of the record.
            patch: Fields to change.

        Returns:
            The canonical stored record.

        Raises:
            NotFoundError: If no record has this id.
        """
        response = self._request(
            "PATCH",
            f"/{collection.value}",
            params={"id": f"eq.{record_id}"},
            json=patch,
            headers={"Prefer": "return=representation"},
        )
        return _first_row(response, collection, record_id)

    def delete(self, collection: Collection, record_id: str) -> None:
        """Delete a record by id.

        Args:
            collection: Target collection.
            record_id: Primary key of the record.
        """
        self._request(
            "DELETE", f"/{collection.value}", params={"id": f"eq.{record_id}"}
        )


def _detail(response: httpx.Response, default: str) -> str:
    """Extract an error message from a PostgREST error body."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or default)
    return default


def _first_row(
    response: httpx.Response, collection: Collection, record_id: str | None
) -> Record:
    """Return the first row of a representation response."""
    rows = response.json()
    if not rows:
        target = f"{collection.value}/{record_id}" if record_id else collection.value
        raise NotFoundError(f"No row returned for {target}", response.status_code)
    row: Record = rows[0]
    return row
