"""Shared types for the rule engine.

This module provides:
- RuleError, RuleActionFailure, RuleConfigurationError: Exception classes
- Rule: declarative rule data (no logic)
- RuleServices: collaborators handed to rule actions
- RuleExecutionLogEntry, DispatchResult: dispatch bookkeeping
- Type aliases for conditions, actions and callbacks
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from abathwa.client.api import RemoteGateway
    from abathwa.client.audit import AuditSink
    from abathwa.client.notifications import Notifier
    from abathwa.client.rules.risk import RiskAssessor
    from abathwa.client.schemas import Record


class RuleError(Exception):
    """Base exception for rule engine errors."""


class RuleConfigurationError(RuleError):
    """A rule references a condition or action that does not exist."""


class RuleActionFailure(RuleError):
    """A rule's action raised during dispatch.

    Attributes:
        rule_id: Id of the failing rule.
        context: Dispatch context.
        cause: Original exception.
    """

    def __init__(self, rule_id: str, context: str, cause: Exception) -> None:
        self.rule_id = rule_id
        self.context = context
        self.cause = cause
        super().__init__(f"Rule {rule_id} failed in {context}: {cause}")


@dataclass(frozen=True)
class Rule:
    """A declarative rule.

    Rules are plain data. The predicate and the effect are looked up by
    ``id`` in the registry's condition and action tables.

    Attributes:
        id: Stable identifier, also the lookup key.
        name: Human readable name.
        description: What the rule enforces.
        priority: Higher runs first.
        resources: Resource types the rule applies to when the dispatch
            names one. Empty means any.
    """

    id: str
    name: str
    description: str
    priority: int
    resources: tuple[str, ...] = ()

    def applies_to(self, resource: str | None) -> bool:
        if resource is None or not self.resources:
            return True
        return resource in self.resources

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "resources": list(self.resources),
        }


@dataclass
class RuleServices:
    """Collaborators available to rule actions.

    Actions request remote writes through the gateway and record what they
    did through the audit sink. They never touch the local cache.
    """

    gateway: RemoteGateway
    audit: AuditSink
    notifier: Notifier
    assessor: RiskAssessor


class ExecutionOutcome(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class RuleExecutionLogEntry:
    """Audit record of one rule action execution."""

    rule_id: str
    context: str
    record_snapshot: dict[str, Any]
    outcome: ExecutionOutcome
    error_detail: str | None = None
    timestamp: float = field(default_factory=time.time)

    def to_details(self) -> dict[str, Any]:
        details: dict[str, Any] = {
            "rule_id": self.rule_id,
            "context": self.context,
            "data": self.record_snapshot,
            "outcome": self.outcome.value,
            "timestamp": self.timestamp,
        }
        if self.error_detail is not None:
            details["error"] = self.error_detail
        return details


@dataclass
class DispatchResult:
    """Result of one dispatch pass."""

    context: str
    matched: list[str] = field(default_factory=list)
    executed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    entries: list[RuleExecutionLogEntry] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


Condition = Callable[["Record"], bool]
Action = Callable[["Record", RuleServices], None]
DispatchErrorCallback = Callable[[RuleActionFailure], None]
