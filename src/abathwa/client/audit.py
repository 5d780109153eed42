"""Append-only audit log.

This module provides:
- AuditEntry: one audit log row
- AuditSink: the append contract used by rules and the sync engine
- GatewayAuditSink: writes entries to the remote ``audit_log`` table
- MemoryAuditSink: keeps entries in process, in append order

Appends are synchronous: an entry is written before the caller moves on.
The caller never needs an acknowledgement, so a failed remote append is
logged and dropped.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from abathwa.client.api import GatewayError
from abathwa.core.types import AuditAction, Collection

if TYPE_CHECKING:
    from abathwa.client.api import RemoteGateway

logger = logging.getLogger(__name__)


@dataclass
class AuditEntry:
    """A single audit log entry."""

    action_type: AuditAction
    resource_type: str
    resource_id: str | None = None
    user_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_row(self) -> dict[str, Any]:
        """Shape the entry as an ``audit_log`` row."""
        return {
            "action_type": AuditAction(self.action_type).value,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "user_id": self.user_id,
            "details_jsonb": self.details,
        }


class AuditSink(Protocol):
    """Protocol for append-only audit destinations."""

    def append(
        self,
        action_type: AuditAction,
        resource_type: str,
        resource_id: str | None = None,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Append one entry."""
        ...


class GatewayAuditSink:
    """Audit sink that inserts rows into the remote audit log."""

    def __init__(self, gateway: RemoteGateway) -> None:
        self._gateway = gateway

    def append(
        self,
        action_type: AuditAction,
        resource_type: str,
        resource_id: str | None = None,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        entry = AuditEntry(
            action_type=action_type,
            resource_type=resource_type,
            resource_id=resource_id,
            user_id=user_id,
            details=details or {},
        )
        try:
            self._gateway.insert(Collection.AUDIT_LOG, entry.to_row())
        except GatewayError as e:
            logger.warning(
                f"Audit append failed for {resource_type}/{resource_id}: {e}"
            )


class MemoryAuditSink:
    """Audit sink that keeps entries in memory, in append order."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    def append(
        self,
        action_type: AuditAction,
        resource_type: str,
        resource_id: str | None = None,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        entry = AuditEntry(
            action_type=action_type,
            resource_type=resource_type,
            resource_id=resource_id,
            user_id=user_id,
            details=details or {},
        )
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> list[AuditEntry]:
        """Snapshot of all entries."""
        with self._lock:
            return list(self._entries)

    def by_resource(self, resource_type: str) -> list[AuditEntry]:
        """Entries for one resource type."""
        return [e for e in self.entries if e.resource_type == resource_type]
