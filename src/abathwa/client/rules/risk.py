"""Risk classification and the risk assessment contract.

This module provides:
- RiskLevel, classify_skip_risk(): milestone skip risk level
- skip_recommendations(): rule-based advice for skipped milestones
- MilestoneSkipAlert: audit payload for a skipped milestone
- RiskAssessment, RiskAssessor: black-box risk scoring contract
- DefaultRiskAssessor: neutral assessment used when no model is available

The statistical model behind a real RiskAssessor is out of scope here.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from abathwa.client.schemas import Record

HIGH_RISK_SKIPS = 3
MEDIUM_RISK_SKIPS = 1
HIGH_RISK_VALUE = 1_000_000
MEDIUM_RISK_VALUE = 500_000

RESTRUCTURE_SKIPS = 2
EMERGENCY_MEETING_VALUE = 500_000

# Due diligence alerts when overall risk exceeds this
DUE_DILIGENCE_ALERT_RISK = 70
# Records scoring above this trigger the high-risk alert rule
HIGH_RISK_SCORE = 80


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def classify_skip_risk(skip_count: int, opportunity_value: float) -> RiskLevel:
    """Classify the risk of a milestone skip.

    Args:
        skip_count: Milestones skipped so far on the opportunity.
        opportunity_value: Total value of the opportunity.

    Returns:
        HIGH above 3 skips or 1,000,000; MEDIUM above 1 skip or 500,000;
        LOW otherwise.
    """
    if skip_count > HIGH_RISK_SKIPS or opportunity_value > HIGH_RISK_VALUE:
        return RiskLevel.HIGH
    if skip_count > MEDIUM_RISK_SKIPS or opportunity_value > MEDIUM_RISK_VALUE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def skip_recommendations(skip_count: int, opportunity_value: float) -> list[str]:
    """Select recommendations for a skipped milestone."""
    recommendations: list[str] = []
    if skip_count > RESTRUCTURE_SKIPS:
        recommendations.append("Consider restructuring project timeline")
        recommendations.append("Review project management approach")
    if opportunity_value > EMERGENCY_MEETING_VALUE:
        recommendations.append("Schedule emergency investor meeting")
        recommendations.append("Prepare detailed risk mitigation plan")
    return recommendations


def skip_figures(record: Record) -> tuple[int, float]:
    """Read (skip count, opportunity value) from a milestone record.

    Missing or null values count as zero.
    """
    skip_count = int(record.get("total_skipped_milestones") or 0)
    opportunity_value = float(record.get("opportunity_value") or 0)
    return skip_count, opportunity_value


@dataclass
class MilestoneSkipAlert:
    """Alert raised when a milestone is skipped."""

    opportunity_id: str | None
    milestone_id: str | None
    skip_reason: str
    risk_level: RiskLevel
    recommendations: list[str]
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_record(cls, record: Record) -> MilestoneSkipAlert:
        """Build the alert for a skipped milestone record."""
        skip_count, opportunity_value = skip_figures(record)
        return cls(
            opportunity_id=record.get("opportunity_id"),
            milestone_id=record.get("id"),
            skip_reason=record.get("skip_reason") or "No reason provided",
            risk_level=classify_skip_risk(skip_count, opportunity_value),
            recommendations=skip_recommendations(skip_count, opportunity_value),
        )

    def to_details(self) -> dict[str, Any]:
        """Audit log payload."""
        return {
            "opportunityId": self.opportunity_id,
            "milestoneId": self.milestone_id,
            "skipReason": self.skip_reason,
            "riskLevel": self.risk_level.value,
            "recommendations": list(self.recommendations),
            "timestamp": self.timestamp,
        }


@dataclass
class RiskAssessment:
    """Scores on a 0-100 scale plus explanatory factors."""

    overall_risk: float
    financial_risk: float
    operational_risk: float
    market_risk: float
    compliance_risk: float
    factors: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overallRisk": self.overall_risk,
            "financialRisk": self.financial_risk,
            "operationalRisk": self.operational_risk,
            "marketRisk": self.market_risk,
            "complianceRisk": self.compliance_risk,
            "riskFactors": list(self.factors),
            "recommendations": list(self.recommendations),
        }


class RiskAssessor(Protocol):
    """Protocol for risk scoring collaborators."""

    def assess_risk(self, record: Record) -> RiskAssessment:
        """Score an opportunity record."""
        ...


class DefaultRiskAssessor:
    """Returns a neutral assessment for every record."""

    def assess_risk(self, record: Record) -> RiskAssessment:
        return RiskAssessment(
            overall_risk=50,
            financial_risk=50,
            operational_risk=50,
            market_risk=50,
            compliance_risk=50,
            factors=["Insufficient data for assessment"],
            recommendations=[
                "Provide more detailed information for accurate risk assessment"
            ],
        )
