"""Wiring of gateway, cache, audit sink, rule dispatcher and sync engine for CLI commands."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import click

from abathwa.client.api import RestGateway
from abathwa.client.audit import GatewayAuditSink
from abathwa.client.cache import EntityCache
from abathwa.client.cli.config import get_cache_path, get_gateway_config
from abathwa.client.notifications import Notifier
from abathwa.client.rules import DefaultRiskAssessor, RuleDispatcher, RuleServices
from abathwa.client.sync import SyncEngine


@dataclass
class Runtime:
    """Objects shared by one CLI invocation."""

    gateway: RestGateway
    cache: EntityCache
    dispatcher: RuleDispatcher
    engine: SyncEngine


@contextmanager
def open_runtime() -> Iterator[Runtime]:
    """Build the runtime from the saved configuration and close it afterwards."""
    gateway_config = get_gateway_config()
    if gateway_config is None:
        click.echo("Error: No gateway configured. Run 'abathwa configure' first.", err=True)
        sys.exit(1)

    gateway = RestGateway(gateway_config)
    cache = EntityCache(get_cache_path())
    audit = GatewayAuditSink(gateway)
    services = RuleServices(
        gateway=gateway,
        audit=audit,
        notifier=Notifier(audit),
        assessor=DefaultRiskAssessor(),
    )
    dispatcher = RuleDispatcher(services)
    engine = SyncEngine(gateway, cache, dispatcher=dispatcher, audit=audit)
    try:
        yield Runtime(gateway=gateway, cache=cache, dispatcher=dispatcher, engine=engine)
    finally:
        cache.close()
        gateway.close()
