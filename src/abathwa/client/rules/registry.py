"""Rule registry.

Rules are declared once as data in DEFAULT_RULES, in registry order:

| Rule                                | Priority | Applies to      |
|-------------------------------------|----------|-----------------|
| opportunity_due_diligence_required  | 1        | opportunity     |
| milestone_skip_alert                | 2        | milestone       |
| payment_verification_required       | 1        | payment         |
| agreement_signing_sequence          | 1        | agreement       |
| high_risk_opportunity_alert         | 1        | opportunity     |
| service_provider_assignment         | 3        | service_request |

The registry resolves each rule's predicate and effect from lookup tables
and never changes after construction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from abathwa.client.rules.actions import ACTIONS
from abathwa.client.rules.conditions import CONDITIONS
from abathwa.client.rules.types import Action, Condition, Rule, RuleConfigurationError
from abathwa.client.schemas import Record

logger = logging.getLogger(__name__)


DEFAULT_RULES: tuple[Rule, ...] = (
    Rule(
        id="opportunity_due_diligence_required",
        name="Due Diligence Required",
        description="All opportunities must have due diligence completed before publishing",
        priority=1,
        resources=("opportunity",),
    ),
    Rule(
        id="milestone_skip_alert",
        name="Milestone Skip Alert",
        description="Alert when milestones are skipped",
        priority=2,
        resources=("milestone",),
    ),
    Rule(
        id="payment_verification_required",
        name="Payment Verification Required",
        description="All payments require admin verification",
        priority=1,
        resources=("payment",),
    ),
    Rule(
        id="agreement_signing_sequence",
        name="Agreement Signing Sequence",
        description="Enforce proper signing sequence for agreements",
        priority=1,
        resources=("agreement",),
    ),
    Rule(
        id="high_risk_opportunity_alert",
        name="High Risk Opportunity Alert",
        description="Alert admins for high-risk opportunities",
        priority=1,
        resources=("opportunity",),
    ),
    Rule(
        id="service_provider_assignment",
        name="Service Provider Assignment",
        description="Auto-assign service providers based on category",
        priority=3,
        resources=("service_request",),
    ),
)


class RuleRegistry:
    """Ordered, immutable set of rules with resolved logic."""

    def __init__(
        self,
        rules: Iterable[Rule] | None = None,
        conditions: Mapping[str, Condition] | None = None,
        actions: Mapping[str, Action] | None = None,
    ) -> None:
        self._rules: tuple[Rule, ...] = tuple(DEFAULT_RULES if rules is None else rules)
        self._conditions = dict(CONDITIONS if conditions is None else conditions)
        self._actions = dict(ACTIONS if actions is None else actions)

        seen: set[str] = set()
        for rule in self._rules:
            if rule.id in seen:
                raise RuleConfigurationError(f"Duplicate rule id: {rule.id}")
            seen.add(rule.id)
            if rule.id not in self._conditions:
                raise RuleConfigurationError(f"No condition registered for {rule.id}")
            if rule.id not in self._actions:
                raise RuleConfigurationError(f"No action registered for {rule.id}")

    @property
    def rules(self) -> tuple[Rule, ...]:
        """Rules in registry order."""
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def condition(self, rule: Rule) -> Condition:
        return self._conditions[rule.id]

    def action(self, rule: Rule) -> Action:
        return self._actions[rule.id]

    def ordered(self) -> list[Rule]:
        """Rules by descending priority, ties in registry order."""
        return sorted(self._rules, key=lambda rule: -rule.priority)

    def matching(self, record: Record, resource: str | None = None) -> list[Rule]:
        """Rules whose condition holds for a record, in execution order.

        Args:
            record: Record to evaluate.
            resource: Resource type of the record, if known. Rules scoped
                to other resources are skipped.

        Returns:
            Matching rules by descending priority; ties keep registry order.
        """
        matches: list[Rule] = []
        for rule in self._rules:
            if not rule.applies_to(resource):
                continue
            try:
                matched = self.condition(rule)(record)
            except Exception as e:
                logger.error(f"Condition of rule {rule.id} raised: {e}")
                continue
            if matched:
                matches.append(rule)
        return sorted(matches, key=lambda rule: -rule.priority)
