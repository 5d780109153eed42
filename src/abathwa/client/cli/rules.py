"""Rule engine commands for the abathwa CLI.

Commands:
- rules: List the built-in rules in execution order
- process: Run one record through the rule engine
- flow: Describe where a payment stands in the escrow flow
"""

from __future__ import annotations

import json
import sys
from datetime import datetime

import click

from abathwa.client.cli.runtime import open_runtime
from abathwa.client.rules import RuleRegistry, describe_payment_flow
from abathwa.core.types import PaymentStatus


@click.command()
def rules() -> None:
    """List the built-in rules in execution order."""
    for rule in RuleRegistry().ordered():
        scope = ", ".join(rule.resources) or "any"
        click.echo(f"[{rule.priority}] {rule.id} ({scope})")
        click.echo(f"    {rule.description}")


@click.command()
@click.argument("context")
@click.argument("record_json")
@click.option("--resource", default=None, help="Resource type of the record (e.g. milestone).")
def process(context: str, record_json: str, resource: str | None) -> None:
    """Run one record through the rule engine.

    CONTEXT names the trigger (e.g. milestone_update). RECORD_JSON is the
    record as a JSON object.
    """
    try:
        record = json.loads(record_json)
    except json.JSONDecodeError as e:
        click.echo(f"Error: invalid record JSON: {e}", err=True)
        sys.exit(1)
    if not isinstance(record, dict):
        click.echo("Error: record JSON must be an object", err=True)
        sys.exit(1)

    with open_runtime() as runtime:
        result = runtime.dispatcher.process(context, record, resource=resource)

    if not result.matched:
        click.echo("No rules matched")
        return
    for rule_id in result.executed:
        click.echo(f"  ok      {rule_id}")
    for rule_id in result.failed:
        click.echo(f"  failed  {rule_id}", err=True)
    if not result.ok:
        sys.exit(1)


@click.command()
@click.argument("status", type=click.Choice([s.value for s in PaymentStatus]))
def flow(status: str) -> None:
    """Describe where a payment with STATUS stands in the escrow flow."""
    state = describe_payment_flow(status)
    click.echo(f"Current step: {state.current_step}")
    click.echo(f"Next action:  {state.next_action}")
    if state.required_documents:
        click.echo(f"Documents:    {', '.join(state.required_documents)}")
    eta = datetime.fromtimestamp(state.estimated_completion)
    click.echo(f"Estimated:    {eta:%Y-%m-%d %H:%M}")
