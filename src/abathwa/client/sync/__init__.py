"""Reconciliation between the local cache and the remote store.

This package provides:
- SyncEngine: full-collection sync and write-through mutation helpers
- Result and state types, exceptions and callback aliases
"""

from abathwa.client.sync.engine import SYNC_ORDER, SyncEngine
from abathwa.client.sync.types import (
    CollectionSyncResult,
    CollectionSyncState,
    ErrorCallback,
    SyncError,
    SyncFailure,
    SyncResult,
    ValidationError,
)

__all__ = [
    # Engine
    "SYNC_ORDER",
    "SyncEngine",
    # Types
    "CollectionSyncResult",
    "CollectionSyncState",
    "ErrorCallback",
    "SyncError",
    "SyncFailure",
    "SyncResult",
    "ValidationError",
]
