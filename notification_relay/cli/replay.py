"""Replay command: run the pipeline over recorded feed snapshots.

Each snapshot in the file gets its own quiet period and processing pass;
alerts the delivery gate lets through are printed.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer

from notification_relay.cli.utils import (
    DEFAULT_CONFIG_PATH,
    display_info,
    display_success,
    display_warning,
    handle_errors,
    load_config,
    open_ledger,
)
from notification_relay.models.notification import AppState
from notification_relay.observability.metrics import get_metrics_text
from notification_relay.services.kv_store import MemoryKeyValueStore
from notification_relay.services.notification.delivery_gate import DeliveryGate
from notification_relay.services.notification.ledger import DedupLedger
from notification_relay.services.notification.relay import NotificationRelay
from notification_relay.services.notification.replay import (
    MemoryReadStateBackend,
    RecordingDeliverySink,
    ScriptedFeedSource,
    StaticLifecycleOracle,
    load_snapshots,
    run_replay,
)

# Replays deliver everything unseen unless --since says otherwise
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SINCE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
]


@handle_errors
def replay_command(
    snapshot_file: Path = typer.Argument(..., help="JSON file: list of snapshots"),
    user: str = typer.Option(..., "--user", "-u", help="User id to sign in as"),
    background: bool = typer.Option(
        False, "--background", help="Simulate a backgrounded app"
    ),
    since: Optional[datetime] = typer.Option(
        None,
        "--since",
        formats=SINCE_FORMATS,
        help="SessionStart (ISO-8601, optional UTC offset); default delivers all",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Use an in-memory ledger instead of the store"
    ),
    show_metrics: bool = typer.Option(
        False, "--metrics", help="Print relay metrics after the replay"
    ),
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to relay config YAML"
    ),
):
    """Replay recorded snapshots through the dedup pipeline."""
    config = load_config(config_path)
    snapshots = load_snapshots(snapshot_file)

    ledger = (
        DedupLedger(MemoryKeyValueStore(), key_prefix=config.ledger.key_prefix)
        if dry_run
        else open_ledger(config)
    )
    sink = RecordingDeliverySink()
    oracle = StaticLifecycleOracle(
        AppState.BACKGROUND if background else AppState.FOREGROUND
    )
    gate = DeliveryGate(oracle, sink, default_screen=config.delivery.default_screen)
    feed = ScriptedFeedSource()
    relay = NotificationRelay(feed, ledger, gate, MemoryReadStateBackend())

    started_at = since or EPOCH
    if started_at.tzinfo is None:
        started_at = started_at.replace(tzinfo=timezone.utc)

    display_info(f"Replaying {len(snapshots)} snapshots for '{user}'")
    try:
        results = asyncio.run(run_replay(relay, feed, user, snapshots, started_at))
    finally:
        ledger.store.close()

    for index, result in enumerate(results, start=1):
        if result is None:
            display_warning(f"Snapshot {index}: no pass (ignored, dropped or failed)")
            continue
        typer.echo(
            f"Snapshot {index}: {result.snapshot_size} unread, "
            f"{result.truly_new_count} new, {len(result.suppressed_ids)} suppressed"
        )

    for title, body, data in sink.presented:
        typer.echo(f"  [{data.get('screen')}] {title}: {body}")

    display_success(f"Presented {len(sink.presented)} local alerts")

    if show_metrics:
        typer.echo(get_metrics_text())
