"""Tests for the rule dispatcher and the built-in rule actions."""

from __future__ import annotations

import itertools

import pytest

from abathwa.client.notifications import Notifier
from abathwa.client.rules import (
    ExecutionOutcome,
    RiskAssessment,
    Rule,
    RuleActionFailure,
    RuleDispatcher,
    RuleRegistry,
    RuleServices,
)
from abathwa.client.rules.dispatcher import AUDIT_RESOURCE
from abathwa.core.types import Collection


class FixedRiskAssessor:
    """Risk assessor returning a fixed overall score."""

    def __init__(self, overall: float) -> None:
        self.overall = overall

    def assess_risk(self, record):  # type: ignore[no-untyped-def]
        return RiskAssessment(
            overall_risk=self.overall,
            financial_risk=self.overall,
            operational_risk=self.overall,
            market_risk=self.overall,
            compliance_risk=self.overall,
            factors=["Thin trading history"],
            recommendations=["Request audited statements"],
        )


def make_registry(order: list[str], failing: set[str] | None = None) -> RuleRegistry:
    """Registry of always-matching rules a (1), b (3), c (2) that record their run order."""
    failing = failing or set()

    def action_for(rule_id: str):  # type: ignore[no-untyped-def]
        def action(record, services) -> None:  # type: ignore[no-untyped-def]
            order.append(rule_id)
            if rule_id in failing:
                raise RuntimeError(f"{rule_id} broke")
        return action

    rules = [Rule("a", "A", "", 1), Rule("b", "B", "", 3), Rule("c", "C", "", 2)]
    return RuleRegistry(
        rules,
        conditions={r.id: (lambda record: True) for r in rules},
        actions={r.id: action_for(r.id) for r in rules},
    )


class TestDispatchOrdering:
    """Tests for matching, ordering and failure isolation."""

    def test_runs_by_descending_priority(self, services: RuleServices) -> None:
        order: list[str] = []
        dispatcher = RuleDispatcher(services, make_registry(order))

        result = dispatcher.process("test_context", {"id": "r1"})

        assert order == ["b", "c", "a"]
        assert result.executed == ["b", "c", "a"]
        assert result.ok is True

    def test_logs_each_execution_in_order(self, services: RuleServices, audit) -> None:  # type: ignore[no-untyped-def]
        dispatcher = RuleDispatcher(services, make_registry([]))

        dispatcher.process("test_context", {"id": "r1", "amount": 5})

        entries = audit.by_resource(AUDIT_RESOURCE)
        assert [e.details["rule_id"] for e in entries] == ["b", "c", "a"]
        assert all(e.details["outcome"] == "success" for e in entries)
        assert entries[0].details["context"] == "test_context"
        assert entries[0].details["data"] == {"id": "r1", "amount": 5}
        assert entries[0].resource_id == "r1"

    def test_failure_does_not_stop_the_pass(self, services: RuleServices, audit) -> None:  # type: ignore[no-untyped-def]
        order: list[str] = []
        failures: list[RuleActionFailure] = []
        dispatcher = RuleDispatcher(
            services, make_registry(order, failing={"b"}), error_callback=failures.append
        )

        result = dispatcher.process("test_context", {"id": "r1"})

        assert order == ["b", "c", "a"]
        assert result.failed == ["b"]
        assert result.executed == ["c", "a"]
        assert result.ok is False
        assert result.entries[0].outcome is ExecutionOutcome.ERROR
        (failure,) = failures
        assert failure.rule_id == "b"
        assert failure.context == "test_context"
        error_entry = audit.by_resource(AUDIT_RESOURCE)[0]
        assert error_entry.details["outcome"] == "error"
        assert error_entry.details["error"] == "b broke"

    def test_nothing_matches(self, services: RuleServices, audit) -> None:  # type: ignore[no-untyped-def]
        result = RuleDispatcher(services).process("profile_update", {"id": "u1"})

        assert result.matched == []
        assert audit.entries == []

    def test_empty_registry_matches_nothing(self, services: RuleServices, gateway, audit) -> None:  # type: ignore[no-untyped-def]
        """An injected empty registry does not fall back to the built-in rules."""
        dispatcher = RuleDispatcher(services, RuleRegistry(rules=[], conditions={}, actions={}))

        result = dispatcher.process("milestone_update", {"id": "m1", "status": "skipped"})

        assert len(dispatcher.registry) == 0
        assert result.matched == []
        assert audit.entries == []
        assert gateway.calls == []

    def test_snapshot_is_taken_before_actions(self, services: RuleServices, audit) -> None:  # type: ignore[no-untyped-def]
        def mutate(record, services) -> None:  # type: ignore[no-untyped-def]
            record["status"] = "changed"

        registry = RuleRegistry(
            [Rule("m", "M", "", 1)],
            conditions={"m": lambda record: True},
            actions={"m": mutate},
        )

        RuleDispatcher(services, registry).process("ctx", {"id": "r1", "status": "draft"})

        assert audit.entries[0].details["data"]["status"] == "draft"

    def test_audit_failure_is_not_fatal(self, services: RuleServices, monkeypatch) -> None:  # type: ignore[no-untyped-def]
        order: list[str] = []

        def broken(*args, **kwargs):  # type: ignore[no-untyped-def]
            raise RuntimeError("audit down")

        monkeypatch.setattr(services.audit, "append", broken)

        result = RuleDispatcher(services, make_registry(order)).process("ctx", {"id": "r1"})

        assert result.executed == ["b", "c", "a"]


RULE_SETS = {
    "distinct": [Rule("r1", "R1", "", 1), Rule("r2", "R2", "", 4), Rule("r3", "R3", "", 3),
                 Rule("r4", "R4", "", 2), Rule("r5", "R5", "", 5)],
    "ties": [Rule("r1", "R1", "", 2), Rule("r2", "R2", "", 5), Rule("r3", "R3", "", 2),
             Rule("r4", "R4", "", 5), Rule("r5", "R5", "", 1)],
}


class TestConditionFidelity:
    """An action runs exactly when its condition holds, in priority order."""

    @pytest.mark.parametrize("rule_set", sorted(RULE_SETS))
    @pytest.mark.parametrize("flags", list(itertools.product([False, True], repeat=5)))
    def test_matched_equals_true_conditions(
        self, services: RuleServices, rule_set: str, flags: tuple[bool, ...]
    ) -> None:
        rules = RULE_SETS[rule_set]
        invoked: list[str] = []

        def action_for(rule_id: str):  # type: ignore[no-untyped-def]
            def action(record, services) -> None:  # type: ignore[no-untyped-def]
                invoked.append(rule_id)
            return action

        registry = RuleRegistry(
            rules,
            conditions={r.id: (lambda record, key=r.id: record["flags"][key]) for r in rules},
            actions={r.id: action_for(r.id) for r in rules},
        )
        record = {"id": "x1", "flags": {r.id: flag for r, flag in zip(rules, flags)}}
        expected = [
            r.id for r in sorted(rules, key=lambda r: -r.priority) if record["flags"][r.id]
        ]

        result = RuleDispatcher(services, registry).process("test_context", record)

        assert result.matched == expected
        assert result.executed == expected
        assert invoked == expected


class TestMilestoneSkipRule:
    """End-to-end dispatch of a skipped milestone."""

    @pytest.fixture
    def milestone(self) -> dict:
        return {
            "id": "m1",
            "opportunity_id": "o1",
            "title": "Factory fit-out",
            "status": "skipped",
            "skip_reason": "Supplier delay",
            "total_skipped_milestones": 4,
            "opportunity_value": 1_200_000,
        }

    def test_alert_and_investor_notifications(
        self, services: RuleServices, gateway, audit, milestone: dict  # type: ignore[no-untyped-def]
    ) -> None:
        gateway.seed(
            Collection.OFFERS,
            {"id": "f1", "opportunity_id": "o1", "investor_id": "i1", "status": "accepted"},
            {"id": "f2", "opportunity_id": "o1", "investor_id": "i2", "status": "accepted"},
            {"id": "f3", "opportunity_id": "o1", "investor_id": "i1", "status": "accepted"},
            {"id": "f4", "opportunity_id": "o1", "investor_id": "i3", "status": "pending"},
            {"id": "f5", "opportunity_id": "o2", "investor_id": "i4", "status": "accepted"},
        )

        result = RuleDispatcher(services).process(
            "milestone_update", milestone, resource="milestone"
        )

        assert result.executed == ["milestone_skip_alert"]
        alert, *notices, log = audit.entries
        assert alert.resource_type == "milestone"
        assert alert.details["riskLevel"] == "high"
        assert alert.details["opportunityId"] == "o1"
        assert alert.details["skipReason"] == "Supplier delay"
        assert "Consider restructuring project timeline" in alert.details["recommendations"]
        assert "Schedule emergency investor meeting" in alert.details["recommendations"]
        assert [n.user_id for n in notices] == ["i1", "i2"]
        assert log.resource_type == AUDIT_RESOURCE

    def test_five_skips_on_large_opportunity(self, services: RuleServices, audit, milestone: dict) -> None:  # type: ignore[no-untyped-def]
        milestone.update(total_skipped_milestones=5, opportunity_value=2_000_000)

        result = RuleDispatcher(services).process("milestone_update", milestone)

        assert result.matched == ["milestone_skip_alert"]
        assert result.executed == ["milestone_skip_alert"]
        alert = audit.by_resource("milestone")[0]
        assert alert.details["riskLevel"] == "high"
        assert alert.details["recommendations"] == [
            "Consider restructuring project timeline",
            "Review project management approach",
            "Schedule emergency investor meeting",
            "Prepare detailed risk mitigation plan",
        ]

    def test_without_opportunity(self, services: RuleServices, gateway, audit) -> None:  # type: ignore[no-untyped-def]
        RuleDispatcher(services).process("milestone_update", {"id": "m2", "status": "skipped"})

        assert gateway.calls_for("fetch") == []
        assert audit.entries[0].details["riskLevel"] == "low"


class TestBuiltInActions:
    """Tests for the remaining built-in rules."""

    def test_payment_verification(self, services: RuleServices, audit) -> None:  # type: ignore[no-untyped-def]
        payment = {
            "id": "p1",
            "status": "pending_proof",
            "payer_proof_url": "https://files/proof.pdf",
            "amount": 5000,
            "sender_id": "i1",
            "receiver_id": "e1",
        }

        RuleDispatcher(services).process("payment_update", payment, resource="payment")

        notice = audit.by_resource("payment")[0]
        assert notice.user_id is None
        assert notice.details["proof_url"] == "https://files/proof.pdf"
        assert notice.details["amount"] == 5000

    def test_payment_without_id_fails(self, services: RuleServices) -> None:
        payment = {"status": "pending_proof", "payer_proof_url": "u"}

        result = RuleDispatcher(services).process("payment_update", payment)

        assert result.failed == ["payment_verification_required"]

    def test_agreement_signing_does_not_recurse(self, services: RuleServices, gateway, audit) -> None:  # type: ignore[no-untyped-def]
        """The action's own update is not dispatched in the same pass."""
        agreement = {
            "id": "g1",
            "status": "draft",
            "entrepreneur_signature_url": "sig-e",
            "investor_id": "i1",
        }
        gateway.seed(Collection.AGREEMENTS, agreement)

        result = RuleDispatcher(services).process(
            "agreement_update", agreement, resource="agreement"
        )

        assert result.executed == ["agreement_signing_sequence"]
        assert len(gateway.calls_for("update")) == 1
        assert gateway.tables[Collection.AGREEMENTS][0]["status"] == "entrepreneur_signed"
        assert audit.by_resource("agreement")[0].user_id == "i1"

    def test_due_diligence_stores_assessment(self, services: RuleServices, gateway, audit) -> None:  # type: ignore[no-untyped-def]
        opportunity = {"id": "o1", "status": "pending_review", "team_data_jsonb": {"size": 4}}
        gateway.seed(Collection.OPPORTUNITIES, opportunity)

        RuleDispatcher(services).process(
            "opportunity_update", opportunity, resource="opportunity"
        )

        stored = gateway.tables[Collection.OPPORTUNITIES][0]["team_data_jsonb"]
        assert stored["size"] == 4
        assert stored["risk_assessment"]["overallRisk"] == 50
        assert audit.by_resource("opportunity") == []

    def test_due_diligence_alerts_on_high_risk(self, gateway, audit) -> None:  # type: ignore[no-untyped-def]
        services = RuleServices(gateway, audit, Notifier(audit), FixedRiskAssessor(85))
        opportunity = {"id": "o1", "status": "pending_review"}
        gateway.seed(Collection.OPPORTUNITIES, opportunity)

        RuleDispatcher(services).process("opportunity_update", opportunity)

        (alert,) = audit.by_resource("opportunity")
        assert alert.details["priority"] == "urgent"
        assert alert.details["risk_score"] == 85
        assert alert.details["risk_factors"] == ["Thin trading history"]

    def test_high_risk_alert(self, services: RuleServices, audit) -> None:  # type: ignore[no-untyped-def]
        record = {"id": "o9", "status": "published", "risk_score": 92}

        result = RuleDispatcher(services).process(
            "opportunity_update", record, resource="opportunity"
        )

        assert result.executed == ["high_risk_opportunity_alert"]
        assert audit.by_resource("opportunity")[0].details["risk_score"] == 92

    def test_service_provider_assignment(self, services: RuleServices, gateway) -> None:  # type: ignore[no-untyped-def]
        gateway.seed(
            Collection.SERVICE_PROVIDERS,
            {"id": "sp1", "service_category": "legal", "is_verified": True, "rating": 4.2},
            {"id": "sp2", "service_category": "legal", "is_verified": True, "rating": 4.8},
            {"id": "sp3", "service_category": "legal", "is_verified": False, "rating": 5.0},
        )
        request = {"id": "sr1", "status": "published", "service_category": "legal"}
        gateway.seed(Collection.SERVICE_REQUESTS, request)

        RuleDispatcher(services).process(
            "service_request_update", request, resource="service_request"
        )

        stored = gateway.tables[Collection.SERVICE_REQUESTS][0]
        assert stored["assigned_provider_id"] == "sp2"
        assert stored["status"] == "assigned"

    def test_no_eligible_provider(self, services: RuleServices, gateway) -> None:  # type: ignore[no-untyped-def]
        request = {"id": "sr1", "status": "published", "service_category": "tax"}

        result = RuleDispatcher(services).process(
            "service_request_update", request, resource="service_request"
        )

        assert result.ok is True
        assert gateway.calls_for("update") == []
