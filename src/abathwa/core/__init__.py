"""Core module - Shared configuration and enums."""

from abathwa.core.config import REST_PREFIX, GatewayConfig
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

__all__ = [
    # Config
    "GatewayConfig",
    "REST_PREFIX",
    # Types
    "AgreementStatus",
    "AuditAction",
    "Collection",
    "MilestoneStatus",
    "OfferStatus",
    "OpportunityStatus",
    "PaymentStatus",
    "ServiceRequestStatus",
]
