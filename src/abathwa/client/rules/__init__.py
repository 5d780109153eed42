"""Rule engine reacting to entity state changes.

This package provides:
- types: Rule data, execution log entries, dispatch results, errors
- conditions / actions: rule predicates and effects, keyed by rule id
- registry: the built-in policy and RuleRegistry
- dispatcher: RuleDispatcher.process()
- risk: skip risk classification and the risk assessment contract
- assignment: service provider selection
- workflow: transition guards and payment flow descriptions
"""

from abathwa.client.rules.assignment import select_provider
from abathwa.client.rules.dispatcher import RuleDispatcher
from abathwa.client.rules.registry import DEFAULT_RULES, RuleRegistry
from abathwa.client.rules.risk import (
    DefaultRiskAssessor,
    MilestoneSkipAlert,
    RiskAssessment,
    RiskAssessor,
    RiskLevel,
    classify_skip_risk,
    skip_recommendations,
)
from abathwa.client.rules.types import (
    DispatchResult,
    ExecutionOutcome,
    Rule,
    RuleActionFailure,
    RuleConfigurationError,
    RuleError,
    RuleExecutionLogEntry,
    RuleServices,
)
from abathwa.client.rules.workflow import (
    PaymentFlowState,
    describe_payment_flow,
    missing_agreement_signatures,
    missing_opportunity_fields,
)

__all__ = [
    # assignment
    "select_provider",
    # dispatcher
    "RuleDispatcher",
    # registry
    "DEFAULT_RULES",
    "RuleRegistry",
    # risk
    "DefaultRiskAssessor",
    "MilestoneSkipAlert",
    "RiskAssessment",
    "RiskAssessor",
    "RiskLevel",
    "classify_skip_risk",
    "skip_recommendations",
    # types
    "DispatchResult",
    "ExecutionOutcome",
    "Rule",
    "RuleActionFailure",
    "RuleConfigurationError",
    "RuleError",
    "RuleExecutionLogEntry",
    "RuleServices",
    # workflow
    "PaymentFlowState",
    "describe_payment_flow",
    "missing_agreement_signatures",
    "missing_opportunity_fields",
]
