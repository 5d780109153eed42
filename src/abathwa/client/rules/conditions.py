"""Rule predicates.

Each predicate is a pure function of one record. CONDITIONS maps rule ids
to their predicate.
"""

from __future__ import annotations

from abathwa.client.rules.risk import HIGH_RISK_SCORE
from abathwa.client.rules.types import Condition
from abathwa.client.schemas import Record
from abathwa.core.types import (
    AgreementStatus,
    MilestoneStatus,
    OpportunityStatus,
    PaymentStatus,
    ServiceRequestStatus,
)


def needs_due_diligence(record: Record) -> bool:
    return (
        record.get("status") == OpportunityStatus.PENDING_REVIEW.value
        and not record.get("due_diligence_completed")
    )


def is_skipped_milestone(record: Record) -> bool:
    return record.get("status") == MilestoneStatus.SKIPPED.value


def awaits_payment_verification(record: Record) -> bool:
    return (
        record.get("status") == PaymentStatus.PENDING_PROOF.value
        and bool(record.get("payer_proof_url"))
    )


def awaits_investor_signature(record: Record) -> bool:
    return (
        record.get("status") == AgreementStatus.DRAFT.value
        and bool(record.get("entrepreneur_signature_url"))
        and not record.get("investor_signature_url")
    )


def is_high_risk(record: Record) -> bool:
    score = record.get("risk_score")
    if isinstance(score, bool) or not isinstance(score, int | float):
        return False
    return score > HIGH_RISK_SCORE


def needs_provider(record: Record) -> bool:
    return (
        record.get("status") == ServiceRequestStatus.PUBLISHED.value
        and not record.get("assigned_provider_id")
    )


CONDITIONS: dict[str, Condition] = {
    "opportunity_due_diligence_required": needs_due_diligence,
    "milestone_skip_alert": is_skipped_milestone,
    "payment_verification_required": awaits_payment_verification,
    "agreement_signing_sequence": awaits_investor_signature,
    "high_risk_opportunity_alert": is_high_risk,
    "service_provider_assignment": needs_provider,
}
