"""Shared pytest fixtures.

Provides an in-memory RemoteGateway with failure injection, an in-memory
audit sink, a file-backed cache and the rule services bundle.
"""

from __future__ import annotations

import copy
import itertools
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from abathwa.client.api import GatewayError, NotFoundError
from abathwa.client.audit import MemoryAuditSink
from abathwa.client.cache import EntityCache
from abathwa.client.notifications import Notifier
from abathwa.client.rules import DefaultRiskAssessor, RuleServices
from abathwa.core.types import Collection


class FakeGateway:
    """In-memory stand-in for the remote store.

    Records every call as (operation, collection, ...) in ``calls``.
    Operations listed in ``failing`` raise GatewayError, either for every
    collection (``"fetch"``) or for one (``("fetch", Collection.OFFERS)``).
    """

    def __init__(self) -> None:
        self.tables: dict[Collection, list[dict[str, Any]]] = {c: [] for c in Collection}
        self.calls: list[tuple[Any, ...]] = []
        self.failing: set[Any] = set()
        self._ids = itertools.count(1)

    def seed(self, collection: Collection, *records: dict[str, Any]) -> None:
        self.tables[collection].extend(copy.deepcopy(list(records)))

    def _check(self, operation: str, collection: Collection) -> None:
        if operation in self.failing or (operation, collection) in self.failing:
            raise GatewayError(f"{operation} {collection.value} unavailable", 503)

    def fetch_all(self, collection: Collection) -> list[dict[str, Any]]:
        self.calls.append(("fetch", collection))
        self._check("fetch", collection)
        return copy.deepcopy(self.tables[collection])

    def insert(self, collection: Collection, data: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("insert", collection, copy.deepcopy(data)))
        self._check("insert", collection)
        record = {"id": f"{collection.value}-{next(self._ids)}", **copy.deepcopy(data)}
        record.setdefault("created_at", "2025-01-01T00:00:00+00:00")
        self.tables[collection].append(record)
        return copy.deepcopy(record)

    def update(
        self, collection: Collection, record_id: str, patch: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls.append(("update", collection, record_id, copy.deepcopy(patch)))
        self._check("update", collection)
        for record in self.tables[collection]:
            if record.get("id") == record_id:
                record.update(copy.deepcopy(patch))
                return copy.deepcopy(record)
        raise NotFoundError(f"No row returned for {collection.value}/{record_id}", 200)

    def delete(self, collection: Collection, record_id: str) -> None:
        self.calls.append(("delete", collection, record_id))
        self._check("delete", collection)
        self.tables[collection] = [
            r for r in self.tables[collection] if r.get("id") != record_id
        ]

    def calls_for(self, operation: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == operation]


@pytest.fixture
def gateway() -> FakeGateway:
    """Create an empty in-memory gateway."""
    return FakeGateway()


@pytest.fixture
def audit() -> MemoryAuditSink:
    """Create an in-memory audit sink."""
    return MemoryAuditSink()


@pytest.fixture
def cache(tmp_path: Path) -> Generator[EntityCache, None, None]:
    """Create a cache backed by a temporary database file."""
    c = EntityCache(tmp_path / "cache.db")
    yield c
    c.close()


@pytest.fixture
def services(gateway: FakeGateway, audit: MemoryAuditSink) -> RuleServices:
    """Create the rule services bundle over the fake gateway."""
    return RuleServices(
        gateway=gateway,
        audit=audit,
        notifier=Notifier(audit),
        assessor=DefaultRiskAssessor(),
    )
