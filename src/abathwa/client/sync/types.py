"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, SyncFailure, ValidationError: Exception classes
- CollectionSyncState: per-collection sync bookkeeping
- CollectionSyncResult, SyncResult: results of sync passes
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from abathwa.core.types import Collection


class SyncError(Exception):
    """Base exception for sync errors."""


class SyncFailure(SyncError):
    """A gateway read or write failed.

    Attributes:
        collection: Collection the operation targeted.
        operation: "fetch", "insert", "update" or "delete".
    """

    def __init__(self, collection: Collection, operation: str, cause: Exception) -> None:
        self.collection = collection
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} on {collection.value} failed: {cause}")


class ValidationError(SyncError):
    """Data is missing or invalid for the requested write or transition.

    Attributes:
        resource: Resource type being validated.
        missing_fields: Fields that were absent or empty.
    """

    def __init__(
        self,
        resource: str,
        message: str,
        missing_fields: list[str] | None = None,
    ) -> None:
        self.resource = resource
        self.missing_fields = missing_fields or []
        super().__init__(message)


@dataclass
class CollectionSyncState:
    """Sync bookkeeping for one collection.

    Created with ``last_synced_at=None`` and only updated after a
    successful full fetch.
    """

    last_synced_at: float | None = None
    is_syncing: bool = False


@dataclass
class CollectionSyncResult:
    """Result of syncing one collection."""

    collection: Collection
    ok: bool
    record_count: int = 0
    error: str | None = None


@dataclass
class SyncResult:
    """Result of a full sync pass over every collection."""

    results: list[CollectionSyncResult] = field(default_factory=list)

    @property
    def synced(self) -> list[Collection]:
        return [r.collection for r in self.results if r.ok]

    @property
    def failed(self) -> list[Collection]:
        return [r.collection for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failed


# Receives every failure the engine logs instead of raising
ErrorCallback = Callable[[SyncError], None]
