"""Ledger commands for inspecting and resetting dedup ledgers.

Provides commands to view and clear a user's processed-id ledger.
"""

from pathlib import Path

import typer

from notification_relay.cli.utils import (
    DEFAULT_CONFIG_PATH,
    display_error,
    display_success,
    display_warning,
    handle_errors,
    load_config,
    open_ledger,
)

# Create ledger sub-app
ledger_app = typer.Typer(help="Inspect and reset dedup ledgers")


@ledger_app.command(name="show")
@handle_errors
def ledger_show(
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to relay config YAML"
    ),
):
    """List a user's processed notification ids, oldest first."""
    config = load_config(config_path)
    dedup_ledger = open_ledger(config)
    try:
        ledger = dedup_ledger.load(user)
    finally:
        dedup_ledger.store.close()

    if not len(ledger):
        display_warning(f"No processed notifications recorded for '{user}'")
        return

    typer.echo(f"Ledger for '{user}' holds {len(ledger)} ids:")
    for notification_id in ledger:
        typer.echo(f" - {notification_id}")


@ledger_app.command(name="clear")
@handle_errors
def ledger_clear(
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to relay config YAML"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a user's ledger. Already seen notifications may alert again."""
    if not yes:
        typer.confirm(f"Clear the dedup ledger for '{user}'?", abort=True)

    config = load_config(config_path)
    dedup_ledger = open_ledger(config)
    try:
        cleared = dedup_ledger.clear(user)
    finally:
        dedup_ledger.store.close()

    if not cleared:
        display_error(f"Failed to clear ledger for '{user}'")
        raise typer.Exit(code=1)

    display_success(f"Ledger cleared for '{user}'")
