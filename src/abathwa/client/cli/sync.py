"""Sync commands for the abathwa CLI.

Commands:
- sync: Refresh cached collections from the remote store
- status: Show what the local cache holds
- show: Print the cached records of a collection
"""

from __future__ import annotations

import json
import sys

import click

from abathwa.client.cache import EntityCache
from abathwa.client.cli.config import get_cache_path
from abathwa.client.cli.runtime import open_runtime
from abathwa.client.schemas import SCHEMAS
from abathwa.client.sync import SYNC_ORDER
from abathwa.core.types import Collection

COLLECTION_CHOICE = click.Choice([c.value for c in SCHEMAS])


@click.command()
@click.argument("collections", nargs=-1, type=COLLECTION_CHOICE)
def sync(collections: tuple[str, ...]) -> None:
    """Refresh cached collections from the remote store.

    Without arguments every collection is synced.
    """
    wanted = [Collection(c) for c in collections] or None
    with open_runtime() as runtime:
        result = runtime.engine.sync_all(wanted)

    for item in result.results:
        if item.ok:
            click.echo(f"  {item.collection.value}: {item.record_count} records")
        else:
            click.echo(f"  {item.collection.value}: FAILED ({item.error})", err=True)

    if not result.ok:
        click.echo(f"Sync failed for {len(result.failed)} collection(s)", err=True)
        sys.exit(1)
    click.echo(f"Synced {len(result.synced)} collection(s)")


@click.command()
def status() -> None:
    """Show what the local cache holds."""
    cache_path = get_cache_path()
    if not cache_path.exists():
        click.echo("No local cache yet. Run 'abathwa sync' first.")
        return

    with EntityCache(cache_path) as cache:
        click.echo(f"Cache: {cache_path}")
        for collection in SYNC_ORDER:
            click.echo(f"  {collection.value}: {cache.count(collection)} records")


@click.command()
@click.argument("collection", type=COLLECTION_CHOICE)
@click.option("--id", "record_id", default=None, help="Only show this record.")
def show(collection: str, record_id: str | None) -> None:
    """Print the cached records of a collection as JSON."""
    cache_path = get_cache_path()
    if not cache_path.exists():
        click.echo("No local cache yet. Run 'abathwa sync' first.", err=True)
        sys.exit(1)

    with EntityCache(cache_path) as cache:
        if record_id is None:
            records = cache.get_all(Collection(collection))
            click.echo(json.dumps(records, indent=2, default=str))
            return
        record = cache.get(Collection(collection), record_id)

    if record is None:
        click.echo(f"Error: {collection}/{record_id} is not cached", err=True)
        sys.exit(1)
    click.echo(json.dumps(record, indent=2, default=str))
