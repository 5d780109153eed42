"""Typed collection registry.

This module provides:
- Record: JSON-shaped entity type alias
- CollectionSchema: per-collection key, required fields, status enum and serializer
- SCHEMAS: closed mapping from Collection to its schema
- schema_for(): registry lookup

Every generic storage call goes through a CollectionSchema, so a collection
name is never used as an untyped routing key.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from abathwa.core.types import (
    AgreementStatus,
    Collection,
    MilestoneStatus,
    OfferStatus,
    OpportunityStatus,
    PaymentStatus,
    ServiceRequestStatus,
)

Record = dict[str, Any]


@dataclass(frozen=True)
class CollectionSchema:
    """Storage and validation rules for one collection.

    Attributes:
        collection: Collection this schema describes.
        resource: Singular resource name ("opportunity"), used in audit
            entries and dispatch contexts.
        required: Fields that must be present on insert.
        status_enum: Enum of valid ``status`` values, or None if the
            collection carries no status.
        key: Primary key field.
    """

    collection: Collection
    resource: str
    required: tuple[str, ...] = ()
    status_enum: type[Enum] | None = None
    key: str = "id"

    @property
    def table(self) -> str:
        """Remote table name."""
        return self.collection.value

    def key_of(self, record: Record) -> str:
        """Return the record's primary key as a string.

        Raises:
            KeyError: If the record has no key.
        """
        value = record.get(self.key)
        if value is None or value == "":
            raise KeyError(f"{self.resource} record has no '{self.key}'")
        return str(value)

    def serialize(self, record: Record) -> str:
        """Encode a record deterministically.

        Identical records always produce identical bytes.
        """
        return json.dumps(record, sort_keys=True, separators=(",", ":"), default=str)

    def deserialize(self, body: str) -> Record:
        """Decode a record previously produced by serialize()."""
        return dict(json.loads(body))

    def missing_fields(self, data: Record) -> list[str]:
        """List required fields that are absent or empty."""
        return [name for name in self.required if data.get(name) in (None, "")]

    def is_valid_status(self, status: str) -> bool:
        """Check a status value against the collection's enum."""
        if self.status_enum is None:
            return False
        return status in {member.value for member in self.status_enum}


SCHEMAS: dict[Collection, CollectionSchema] = {
    Collection.PROFILES: CollectionSchema(
        collection=Collection.PROFILES,
        resource="profile",
    ),
    Collection.OPPORTUNITIES: CollectionSchema(
        collection=Collection.OPPORTUNITIES,
        resource="opportunity",
        required=("entrepreneur_id", "name", "amount_sought"),
        status_enum=OpportunityStatus,
    ),
    Collection.OFFERS: CollectionSchema(
        collection=Collection.OFFERS,
        resource="offer",
        required=("opportunity_id", "investor_id", "amount"),
        status_enum=OfferStatus,
    ),
    Collection.PAYMENTS: CollectionSchema(
        collection=Collection.PAYMENTS,
        resource="payment",
        required=("amount", "currency", "payment_type", "sender_id", "receiver_id"),
        status_enum=PaymentStatus,
    ),
    Collection.MILESTONES: CollectionSchema(
        collection=Collection.MILESTONES,
        resource="milestone",
        required=("opportunity_id", "title"),
        status_enum=MilestoneStatus,
    ),
    Collection.AGREEMENTS: CollectionSchema(
        collection=Collection.AGREEMENTS,
        resource="agreement",
        required=("entrepreneur_id", "offer_id"),
        status_enum=AgreementStatus,
    ),
    Collection.SERVICE_REQUESTS: CollectionSchema(
        collection=Collection.SERVICE_REQUESTS,
        resource="service_request",
        required=("entrepreneur_id", "service_category", "title"),
        status_enum=ServiceRequestStatus,
    ),
    Collection.SERVICE_PROVIDERS: CollectionSchema(
        collection=Collection.SERVICE_PROVIDERS,
        resource="service_provider",
        required=("user_id", "company_name", "service_category"),
    ),
}

# Collections mirrored into the local cache
CACHED_COLLECTIONS: frozenset[Collection] = frozenset(SCHEMAS)


def schema_for(collection: Collection | str) -> CollectionSchema:
    """Look up the schema of a cached collection.

    Args:
        collection: Collection enum member or its value.

    Returns:
        The collection's schema.

    Raises:
        ValueError: If the name is not a known collection.
        KeyError: If the collection is not cached locally (e.g. audit_log).
    """
    return SCHEMAS[Collection(collection)]
