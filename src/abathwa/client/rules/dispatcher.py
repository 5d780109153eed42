"""Rule dispatcher.

This module provides:
- RuleDispatcher: evaluates the registry against one record and runs the
  matching rules' actions

Dispatch is a single forward pass:
1. Keep the rules whose condition holds for the record.
2. Order them by descending priority, ties in registry order.
3. Run each action to completion before starting the next.
4. Append one execution log entry per action to the audit sink before
   moving on. A failing action is logged as an error and the pass
   continues with the next rule.

Side effects produced by actions are not fed back into the registry during
the same pass.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from abathwa.client.rules.registry import RuleRegistry
from abathwa.client.rules.types import (
    DispatchErrorCallback,
    DispatchResult,
    ExecutionOutcome,
    RuleActionFailure,
    RuleExecutionLogEntry,
    RuleServices,
)
from abathwa.client.schemas import Record
from abathwa.core.types import AuditAction

logger = logging.getLogger(__name__)

AUDIT_RESOURCE = "rule_engine"


def snapshot(record: Record) -> dict[str, Any]:
    """JSON-safe copy of a record as it was when dispatch started."""
    return dict(json.loads(json.dumps(record, default=str)))


class RuleDispatcher:
    """Runs matching rules for entity state changes."""

    def __init__(
        self,
        services: RuleServices,
        registry: RuleRegistry | None = None,
        error_callback: DispatchErrorCallback | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            services: Gateway, audit sink, notifier and risk assessor used by actions.
            registry: Rules to evaluate (defaults to the built-in policy).
            error_callback: Optional callback receiving every action failure.
        """
        self._services = services
        self._registry = registry if registry is not None else RuleRegistry()
        self._error_callback = error_callback

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    def process(
        self,
        context: str,
        record: Record,
        *,
        resource: str | None = None,
    ) -> DispatchResult:
        """Dispatch one record through the registry.

        Args:
            context: What triggered the dispatch (e.g. "milestone_update").
            record: Record whose state changed.
            resource: Resource type of the record, if known.

        Returns:
            DispatchResult listing matched, executed and failed rule ids.
        """
        result = DispatchResult(context=context)
        record_snapshot = snapshot(record)
        matches = self._registry.matching(record, resource)
        result.matched = [rule.id for rule in matches]

        if matches:
            logger.debug(f"{context}: {len(matches)} rule(s) matched: {result.matched}")

        for rule in matches:
            action = self._registry.action(rule)
            try:
                action(record, self._services)
            except Exception as e:
                failure = RuleActionFailure(rule.id, context, e)
                logger.error(str(failure))
                entry = RuleExecutionLogEntry(
                    rule_id=rule.id,
                    context=context,
                    record_snapshot=record_snapshot,
                    outcome=ExecutionOutcome.ERROR,
                    error_detail=str(e),
                )
                result.failed.append(rule.id)
                self._log(entry)
                result.entries.append(entry)
                self._report(failure)
                continue

            entry = RuleExecutionLogEntry(
                rule_id=rule.id,
                context=context,
                record_snapshot=record_snapshot,
                outcome=ExecutionOutcome.SUCCESS,
            )
            result.executed.append(rule.id)
            self._log(entry)
            result.entries.append(entry)

        return result

    def _log(self, entry: RuleExecutionLogEntry) -> None:
        """Append an execution entry to the audit sink."""
        try:
            self._services.audit.append(
                AuditAction.CREATE,
                AUDIT_RESOURCE,
                resource_id=self._record_id(entry),
                details=entry.to_details(),
            )
        except Exception as e:
            logger.warning(f"Could not log execution of rule {entry.rule_id}: {e}")

    def _report(self, failure: RuleActionFailure) -> None:
        if self._error_callback is None:
            return
        try:
            self._error_callback(failure)
        except Exception as e:
            logger.warning(f"Error callback raised: {e}")

    @staticmethod
    def _record_id(entry: RuleExecutionLogEntry) -> str | None:
        record_id = entry.record_snapshot.get("id")
        return str(record_id) if record_id is not None else None
