"""Shared types for abathwa.

This module defines the closed set of collections and the status enums
stored by the backing database. Rules key off these values.
"""

from __future__ import annotations

from enum import Enum


class Collection(str, Enum):
    """Named record collections known to the system."""

    PROFILES = "profiles"
    OPPORTUNITIES = "opportunities"
    OFFERS = "offers"
    PAYMENTS = "payments"
    MILESTONES = "milestones"
    AGREEMENTS = "agreements"
    SERVICE_REQUESTS = "service_requests"
    SERVICE_PROVIDERS = "service_providers"
    # Remote only, never mirrored locally
    AUDIT_LOG = "audit_log"


class OpportunityStatus(str, Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    PUBLISHED = "published"
    REJECTED = "rejected"
    FUNDED = "funded"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class PaymentStatus(str, Enum):
    INITIATED = "initiated"
    PENDING_PROOF = "pending_proof"
    ADMIN_REVIEW = "admin_review"
    ONWARD_TRANSFER_PENDING = "onward_transfer_pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class MilestoneStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class AgreementStatus(str, Enum):
    DRAFT = "draft"
    ENTREPRENEUR_SIGNED = "entrepreneur_signed"
    INVESTOR_SIGNED = "investor_signed"
    ADMIN_SIGNED = "admin_signed"
    FUNDS_IN_ESCROW = "funds_in_escrow"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"


class ServiceRequestStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    REVIEW_PENDING = "review_pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AuditAction(str, Enum):
    """Action types accepted by the audit log."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    VIEW = "view"
    APPROVE = "approve"
    REJECT = "reject"
    FUND = "fund"
    WITHDRAW = "withdraw"
    SIGN = "sign"
    NOMINATE = "nominate"
    VOTE = "vote"
