"""Sync engine reconciling the local cache with the remote store.

This module provides:
- SyncEngine: full-collection reconciliation and write-through mutations
- SYNC_ORDER: the fixed order in which sync_all() visits collections
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any, NoReturn

from abathwa.client.rules.workflow import (
    missing_agreement_signatures,
    missing_opportunity_fields,
)
from abathwa.client.schemas import CollectionSchema, Record, schema_for
from abathwa.client.sync.types import (
    CollectionSyncResult,
    CollectionSyncState,
    ErrorCallback,
    SyncError,
    SyncFailure,
    SyncResult,
    ValidationError,
)
from abathwa.core.types import (
    AgreementStatus,
    AuditAction,
    Collection,
    MilestoneStatus,
    OfferStatus,
    OpportunityStatus,
    PaymentStatus,
    ServiceRequestStatus,
)

if TYPE_CHECKING:
    from abathwa.client.api import RemoteGateway
    from abathwa.client.audit import AuditSink
    from abathwa.client.cache import EntityCache
    from abathwa.client.rules.dispatcher import RuleDispatcher

logger = logging.getLogger(__name__)

SYNC_ORDER: tuple[Collection, ...] = (
    Collection.PROFILES,
    Collection.SERVICE_PROVIDERS,
    Collection.OPPORTUNITIES,
    Collection.OFFERS,
    Collection.PAYMENTS,
    Collection.MILESTONES,
    Collection.AGREEMENTS,
    Collection.SERVICE_REQUESTS,
)


class SyncEngine:
    """Keeps the local cache in step with the remote store.

    Reads replace whole collections; writes go to the gateway first and are
    mirrored locally only once the gateway has returned the canonical record.
    The cache is never ahead of confirmed remote state.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        cache: EntityCache,
        dispatcher: RuleDispatcher | None = None,
        audit: AuditSink | None = None,
        error_callback: ErrorCallback | None = None,
    ) -> None:
        """Initialize the sync engine.

        Args:
            gateway: Remote data gateway.
            cache: Local entity cache.
            dispatcher: Optional rule dispatcher fed with confirmed mutations.
            audit: Optional audit sink for validation failures.
            error_callback: Optional callback receiving every sync error,
                including the ones that are only logged.
        """
        self._gateway = gateway
        self._cache = cache
        self._dispatcher = dispatcher
        self._audit = audit
        self._error_callback = error_callback
        self._states: dict[Collection, CollectionSyncState] = {
            collection: CollectionSyncState() for collection in SYNC_ORDER
        }
        self._records: dict[Collection, list[Record]] = {
            collection: [] for collection in SYNC_ORDER
        }

    # === Reads ===

    def load_cached(self, collection: Collection) -> int:
        """Populate in-memory state from the cache.

        Returns:
            Number of cached records loaded (existing state is kept if
            the cache is empty).
        """
        collection = Collection(collection)
        cached = self._cache.get_all(collection)
        if cached:
            self._records[collection] = cached
        return len(cached)

    def sync_collection(self, collection: Collection) -> CollectionSyncResult:
        """Replace a collection's cache with a fresh full fetch.

        On failure the cache and the collection's SyncState are left as
        they were. There is no retry.

        Args:
            collection: Collection to reconcile.

        Returns:
            CollectionSyncResult describing the outcome.
        """
        collection = Collection(collection)
        schema_for(collection)
        state = self._states[collection]
        state.is_syncing = True
        try:
            self.load_cached(collection)

            try:
                records = self._gateway.fetch_all(collection)
            except Exception as e:
                failure = SyncFailure(collection, "fetch", e)
                logger.warning(f"Failed to sync {collection.value}: {e}")
                self._report(failure)
                return CollectionSyncResult(collection, ok=False, error=str(e))

            if not self._cache.replace_all(collection, records):
                error = SyncError(f"Cache write for {collection.value} failed")
                logger.warning(str(error))
                self._report(error)
                return CollectionSyncResult(collection, ok=False, error=str(error))

            self._records[collection] = [dict(r) for r in records]
            state.last_synced_at = time.time()
            logger.info(f"Synced {len(records)} {collection.value}")
            return CollectionSyncResult(collection, ok=True, record_count=len(records))
        finally:
            state.is_syncing = False

    def sync_all(self, collections: Iterable[Collection] | None = None) -> SyncResult:
        """Sync every collection, one after the other.

        Collections are synced sequentially in SYNC_ORDER. Failures are
        logged and reported in the result; they never stop the pass.

        Args:
            collections: Optional subset to sync (still visited in SYNC_ORDER).
        """
        wanted = set(SYNC_ORDER if collections is None else map(Collection, collections))
        result = SyncResult()
        for collection in SYNC_ORDER:
            if collection in wanted:
                result.results.append(self.sync_collection(collection))
        if result.failed:
            logger.warning(
                f"Sync finished with failures: {[c.value for c in result.failed]}"
            )
        return result

    def records(self, collection: Collection) -> list[Record]:
        """Copy of the in-memory records of a collection."""
        return [dict(r) for r in self._records[Collection(collection)]]

    def get(self, collection: Collection, record_id: str) -> Record | None:
        """Find one record in memory, falling back to the cache."""
        collection = Collection(collection)
        for record in self._records[collection]:
            if str(record.get("id")) == str(record_id):
                return dict(record)
        return self._cache.get(collection, record_id)

    def state(self, collection: Collection) -> CollectionSyncState:
        """Copy of a collection's sync state."""
        current = self._states[Collection(collection)]
        return CollectionSyncState(current.last_synced_at, current.is_syncing)

    def status(self) -> dict[Collection, CollectionSyncState]:
        """Copy of every collection's sync state."""
        return {collection: self.state(collection) for collection in SYNC_ORDER}

    # === Mutations ===

    def add_opportunity(self, data: Record) -> Record:
        return self._insert(Collection.OPPORTUNITIES, data)

    def update_opportunity_status(
        self, opportunity_id: str, status: OpportunityStatus | str
    ) -> Record:
        """Change an opportunity's status.

        Submitting for review requires a complete opportunity.

        Raises:
            ValidationError: Unknown status or incomplete opportunity.
            SyncFailure: The gateway rejected the update.
        """
        schema = schema_for(Collection.OPPORTUNITIES)
        value = self._status_value(schema, status)
        if value == OpportunityStatus.PENDING_REVIEW.value:
            current = self._require_current(schema, opportunity_id)
            self._guard(schema, current, missing_opportunity_fields(current))
        return self._update(Collection.OPPORTUNITIES, opportunity_id, {"status": value})

    def add_offer(self, data: Record) -> Record:
        return self._insert(Collection.OFFERS, data)

    def update_offer_status(self, offer_id: str, status: OfferStatus | str) -> Record:
        value = self._status_value(schema_for(Collection.OFFERS), status)
        return self._update(Collection.OFFERS, offer_id, {"status": value})

    def add_payment(self, data: Record) -> Record:
        return self._insert(Collection.PAYMENTS, data)

    def update_payment_status(
        self, payment_id: str, status: PaymentStatus | str, **fields: Any
    ) -> Record:
        """Change a payment's status, optionally with extra fields (e.g. proof url)."""
        value = self._status_value(schema_for(Collection.PAYMENTS), status)
        return self._update(Collection.PAYMENTS, payment_id, {**fields, "status": value})

    def add_milestone(self, data: Record) -> Record:
        return self._insert(Collection.MILESTONES, data)

    def update_milestone_status(
        self, milestone_id: str, status: MilestoneStatus | str, **fields: Any
    ) -> Record:
        """Change a milestone's status, optionally with extra fields (e.g. skip reason)."""
        value = self._status_value(schema_for(Collection.MILESTONES), status)
        return self._update(
            Collection.MILESTONES, milestone_id, {**fields, "status": value}
        )

    def add_agreement(self, data: Record) -> Record:
        return self._insert(Collection.AGREEMENTS, data)

    def update_agreement_status(
        self, agreement_id: str, status: AgreementStatus | str
    ) -> Record:
        """Change an agreement's status.

        Finalizing requires both the entrepreneur's and the investor's signature.
        """
        schema = schema_for(Collection.AGREEMENTS)
        value = self._status_value(schema, status)
        if value == AgreementStatus.FINALIZED.value:
            current = self._require_current(schema, agreement_id)
            self._guard(schema, current, missing_agreement_signatures(current))
        return self._update(Collection.AGREEMENTS, agreement_id, {"status": value})

    def add_service_request(self, data: Record) -> Record:
        return self._insert(Collection.SERVICE_REQUESTS, data)

    def update_service_request_status(
        self, request_id: str, status: ServiceRequestStatus | str
    ) -> Record:
        value = self._status_value(schema_for(Collection.SERVICE_REQUESTS), status)
        return self._update(Collection.SERVICE_REQUESTS, request_id, {"status": value})

    def delete_record(self, collection: Collection, record_id: str) -> None:
        """Delete a record remotely, then locally.

        Raises:
            SyncFailure: The gateway rejected the delete.
        """
        collection = Collection(collection)
        schema_for(collection)
        try:
            self._gateway.delete(collection, record_id)
        except Exception as e:
            raise self._write_failed(collection, "delete", e) from e

        if not self._cache.remove(collection, record_id):
            logger.warning(f"Deleted {collection.value}/{record_id} remotely but not in cache")
        self._records[collection] = [
            r for r in self._records[collection] if str(r.get("id")) != str(record_id)
        ]
        logger.info(f"Deleted {collection.value}/{record_id}")

    # === Internal ===

    def _insert(self, collection: Collection, data: Record) -> Record:
        """Write-through insert."""
        schema = schema_for(collection)
        missing = schema.missing_fields(data)
        if missing:
            self._reject(schema, data, missing, f"Missing required {schema.resource} fields")
        if data.get("status") is not None:
            self._status_value(schema, data["status"])

        try:
            record = self._gateway.insert(collection, data)
        except Exception as e:
            raise self._write_failed(collection, "insert", e) from e

        self._mirror(collection, record)
        logger.info(f"Created {schema.resource} {record.get('id')}")
        self._dispatch(schema, "insert", record)
        return record

    def _update(self, collection: Collection, record_id: str, patch: Record) -> Record:
        """Write-through update."""
        schema = schema_for(collection)
        try:
            record = self._gateway.update(collection, record_id, patch)
        except Exception as e:
            raise self._write_failed(collection, "update", e) from e

        self._mirror(collection, record)
        logger.info(f"Updated {schema.resource} {record_id}: {sorted(patch)}")
        self._dispatch(schema, "update", record)
        return record

    def _mirror(self, collection: Collection, record: Record) -> None:
        """Copy a gateway-confirmed record into the cache and in-memory state."""
        if not self._cache.upsert(collection, record):
            logger.warning(
                f"Confirmed {collection.value}/{record.get('id')} could not be cached"
            )
        records = self._records[collection]
        for index, existing in enumerate(records):
            if str(existing.get("id")) == str(record.get("id")):
                records[index] = dict(record)
                break
        else:
            records.append(dict(record))

    def _dispatch(self, schema: CollectionSchema, operation: str, record: Record) -> None:
        """Pass a confirmed mutation to the rule dispatcher."""
        if self._dispatcher is None:
            return
        context = f"{schema.resource}_{operation}"
        try:
            self._dispatcher.process(context, record, resource=schema.resource)
        except Exception as e:
            logger.error(f"Rule dispatch for {context} failed: {e}")

    def _write_failed(self, collection: Collection, operation: str, cause: Exception) -> SyncFailure:
        failure = SyncFailure(collection, operation, cause)
        logger.error(str(failure))
        self._report(failure)
        return failure

    def _status_value(self, schema: CollectionSchema, status: Enum | str) -> str:
        value = status.value if isinstance(status, Enum) else str(status)
        if not schema.is_valid_status(value):
            self._reject(schema, {"status": value}, [], f"Invalid {schema.resource} status: {value}")
        return value

    def _require_current(self, schema: CollectionSchema, record_id: str) -> Record:
        current = self.get(schema.collection, record_id)
        if current is None:
            self._reject(
                schema, {"id": record_id}, [],
                f"Unknown {schema.resource} {record_id}; sync before changing its status",
            )
        return current

    def _guard(self, schema: CollectionSchema, record: Record, missing: list[str]) -> None:
        if missing:
            self._reject(
                schema, record, missing,
                f"{schema.resource} {record.get('id')} is missing {', '.join(missing)}",
            )

    def _reject(
        self,
        schema: CollectionSchema,
        data: Record,
        missing: list[str],
        message: str,
    ) -> NoReturn:
        """Log, audit and raise a validation failure."""
        error = ValidationError(schema.resource, message, missing)
        logger.warning(message)
        if self._audit is not None:
            self._audit.append(
                AuditAction.CREATE,
                schema.resource,
                resource_id=str(data["id"]) if data.get("id") else None,
                details={
                    "type": "validation_error",
                    "missing_fields": missing,
                    "message": message,
                    "data": json.loads(json.dumps(data, default=str)),
                    "timestamp": time.time(),
                },
            )
        self._report(error)
        raise error

    def _report(self, error: SyncError) -> None:
        if self._error_callback is None:
            return
        try:
            self._error_callback(error)
        except Exception as e:
            logger.warning(f"Error callback raised: {e}")
