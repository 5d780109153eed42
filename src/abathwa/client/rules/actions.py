"""Rule effects.

Each action receives the dispatched record and the RuleServices bundle.
Actions request remote writes through the gateway and record notifications
and alerts through the audit sink; they never write the local cache.
ACTIONS maps rule ids to their effect.

Any exception an action raises is caught and logged by the dispatcher.
"""

from __future__ import annotations

import logging
from typing import Any

from abathwa.client.notifications import NotificationPriority, NotificationType
from abathwa.client.rules.assignment import select_provider
from abathwa.client.rules.risk import DUE_DILIGENCE_ALERT_RISK, MilestoneSkipAlert
from abathwa.client.rules.types import Action, RuleServices
from abathwa.client.schemas import Record
from abathwa.core.types import (
    AgreementStatus,
    AuditAction,
    Collection,
    OfferStatus,
    ServiceRequestStatus,
)

logger = logging.getLogger(__name__)


def _require_id(record: Record, resource: str) -> str:
    record_id = record.get("id")
    if not record_id:
        raise ValueError(f"{resource} record has no id")
    return str(record_id)


def alert_high_risk(
    services: RuleServices,
    opportunity_id: str | None,
    risk_score: Any,
    factors: list[str],
    recommendations: list[str],
) -> None:
    """Tell the admins an opportunity scored as high risk."""
    services.notifier.notify_admins(
        "High risk opportunity",
        "High risk opportunity detected",
        resource_type="opportunity",
        resource_id=opportunity_id,
        type=NotificationType.OPPORTUNITY,
        priority=NotificationPriority.URGENT,
        details={
            "risk_score": risk_score,
            "risk_factors": list(factors),
            "recommendations": list(recommendations),
        },
    )


def run_due_diligence(record: Record, services: RuleServices) -> None:
    """Assess an opportunity submitted for review and store the result."""
    opportunity_id = _require_id(record, "opportunity")
    assessment = services.assessor.assess_risk(record)

    team_data = dict(record.get("team_data_jsonb") or {})
    team_data["risk_assessment"] = assessment.to_dict()
    services.gateway.update(
        Collection.OPPORTUNITIES, opportunity_id, {"team_data_jsonb": team_data}
    )
    logger.info(
        f"Risk assessment stored for opportunity {opportunity_id}: "
        f"{assessment.overall_risk}"
    )

    if assessment.overall_risk > DUE_DILIGENCE_ALERT_RISK:
        alert_high_risk(
            services,
            opportunity_id,
            assessment.overall_risk,
            assessment.factors,
            assessment.recommendations,
        )


def handle_milestone_skip(record: Record, services: RuleServices) -> None:
    """Record a skip alert and tell the opportunity's accepted investors."""
    alert = MilestoneSkipAlert.from_record(record)
    details = alert.to_details()
    services.audit.append(
        AuditAction.CREATE,
        "milestone",
        resource_id=alert.milestone_id,
        details=details,
    )

    if not alert.opportunity_id:
        logger.warning(f"Skipped milestone {alert.milestone_id} has no opportunity")
        return

    offers = services.gateway.fetch_all(Collection.OFFERS)
    investors: list[str] = []
    for offer in offers:
        if (
            offer.get("opportunity_id") == alert.opportunity_id
            and offer.get("status") == OfferStatus.ACCEPTED.value
            and offer.get("investor_id")
            and offer["investor_id"] not in investors
        ):
            investors.append(offer["investor_id"])

    for investor_id in investors:
        services.notifier.notify_user(
            investor_id,
            "Milestone skipped",
            f"A milestone was skipped ({alert.risk_level.value} risk): {alert.skip_reason}",
            resource_type="milestone",
            resource_id=alert.milestone_id,
            type=NotificationType.MILESTONE,
            priority=NotificationPriority.HIGH,
            details=details,
        )


def request_payment_verification(record: Record, services: RuleServices) -> None:
    """Ask the admin reviewers to verify an uploaded payment proof."""
    payment_id = _require_id(record, "payment")
    services.notifier.notify_admins(
        "Payment verification required",
        "Payment verification required",
        resource_type="payment",
        resource_id=payment_id,
        type=NotificationType.PAYMENT,
        priority=NotificationPriority.HIGH,
        details={
            "payment_id": payment_id,
            "amount": record.get("amount"),
            "sender": record.get("sender_id"),
            "receiver": record.get("receiver_id"),
            "proof_url": record.get("payer_proof_url"),
        },
    )


def request_investor_signature(record: Record, services: RuleServices) -> None:
    """Move a draft agreement to entrepreneur_signed and ask the investor to sign."""
    agreement_id = _require_id(record, "agreement")
    services.gateway.update(
        Collection.AGREEMENTS,
        agreement_id,
        {"status": AgreementStatus.ENTREPRENEUR_SIGNED.value},
    )

    investor_id = record.get("investor_id")
    if not investor_id:
        logger.warning(f"Agreement {agreement_id} has no investor to notify")
        return
    services.notifier.notify_user(
        investor_id,
        "Agreement ready to sign",
        "Entrepreneur has signed. Please review and sign the agreement.",
        resource_type="agreement",
        resource_id=agreement_id,
        type=NotificationType.AGREEMENT,
        priority=NotificationPriority.HIGH,
        details={"agreement_id": agreement_id, "investor_id": investor_id},
    )


def report_high_risk(record: Record, services: RuleServices) -> None:
    """Alert the admins about a record with a high risk score."""
    alert_high_risk(
        services,
        record.get("id"),
        record.get("risk_score"),
        record.get("risk_factors") or [],
        record.get("recommendations") or [],
    )


def assign_provider(record: Record, services: RuleServices) -> None:
    """Assign the best verified provider of the request's category."""
    request_id = _require_id(record, "service_request")
    providers = services.gateway.fetch_all(Collection.SERVICE_PROVIDERS)
    provider = select_provider(providers, record.get("service_category"))
    if provider is None:
        logger.info(
            f"No verified provider for service request {request_id} "
            f"({record.get('service_category')})"
        )
        return

    services.gateway.update(
        Collection.SERVICE_REQUESTS,
        request_id,
        {
            "assigned_provider_id": provider["id"],
            "status": ServiceRequestStatus.ASSIGNED.value,
        },
    )
    logger.info(f"Assigned provider {provider['id']} to service request {request_id}")


ACTIONS: dict[str, Action] = {
    "opportunity_due_diligence_required": run_due_diligence,
    "milestone_skip_alert": handle_milestone_skip,
    "payment_verification_required": request_payment_verification,
    "agreement_signing_sequence": request_investor_signature,
    "high_risk_opportunity_alert": report_high_risk,
    "service_provider_assignment": assign_provider,
}
