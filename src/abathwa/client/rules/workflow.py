"""Workflow guards and payment flow descriptions.

This module provides:
- missing_opportunity_fields(): completeness check before review
- missing_agreement_signatures(): signature check before finalization
- PaymentFlowState, describe_payment_flow(): where a payment stands and what comes next
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from abathwa.client.schemas import Record
from abathwa.core.types import PaymentStatus

OPPORTUNITY_REVIEW_FIELDS = ("name", "description", "amount_sought", "expected_roi", "industry")
AGREEMENT_SIGNATURES = ("entrepreneur_signature_url", "investor_signature_url")

HOUR = 60 * 60
DAY = 24 * HOUR


def _missing(record: Record, names: tuple[str, ...]) -> list[str]:
    return [name for name in names if not record.get(name)]


def missing_opportunity_fields(record: Record) -> list[str]:
    """Fields an opportunity still needs before it can go to review."""
    return _missing(record, OPPORTUNITY_REVIEW_FIELDS)


def missing_agreement_signatures(record: Record) -> list[str]:
    """Signatures an agreement still needs before it can be finalized."""
    return _missing(record, AGREEMENT_SIGNATURES)


@dataclass(frozen=True)
class _Step:
    current: str
    next_action: str
    documents: tuple[str, ...]
    eta: float


_STEPS: dict[PaymentStatus, _Step] = {
    PaymentStatus.INITIATED: _Step(
        "Payment Request Created", "Upload payment proof",
        ("Bank transfer receipt", "Reference number"), DAY,
    ),
    PaymentStatus.PENDING_PROOF: _Step(
        "Awaiting Payment Proof", "Admin will review payment",
        ("Payment proof", "Bank statement"), 2 * HOUR,
    ),
    PaymentStatus.ADMIN_REVIEW: _Step(
        "Admin Reviewing Payment", "Admin will confirm and process", (), 4 * HOUR,
    ),
    PaymentStatus.ONWARD_TRANSFER_PENDING: _Step(
        "Preparing Onward Transfer", "Admin will complete transfer",
        ("Receiver banking details",), DAY,
    ),
    PaymentStatus.COMPLETED: _Step("Payment Completed", "Payment finalized", (), 0),
    PaymentStatus.FAILED: _Step(
        "Payment Failed", "Contact support", ("Error details", "Support ticket"), 7 * DAY,
    ),
}

_UNKNOWN = _Step("Unknown", "Unknown", (), 0)


@dataclass
class PaymentFlowState:
    """Where a payment stands in the escrow flow."""

    status: str
    current_step: str
    next_action: str
    required_documents: list[str] = field(default_factory=list)
    estimated_completion: float = 0.0


def describe_payment_flow(status: str, now: float | None = None) -> PaymentFlowState:
    """Describe the current step of a payment.

    Args:
        status: Payment status value.
        now: Reference timestamp (defaults to current time).

    Returns:
        PaymentFlowState; unknown statuses report "Unknown" and complete now.
    """
    now = time.time() if now is None else now
    try:
        step = _STEPS.get(PaymentStatus(status), _UNKNOWN)
    except ValueError:
        step = _UNKNOWN
    return PaymentFlowState(
        status=status,
        current_step=step.current,
        next_action=step.next_action,
        required_documents=list(step.documents),
        estimated_completion=now + step.eta,
    )
