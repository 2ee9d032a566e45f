"""notification-relay CLI Package.

Operator tooling for the notification dedup pipeline.

Usage:
    python -m notification_relay.cli ledger show --user u-42
    python -m notification_relay.cli ledger clear --user u-42 --yes
    python -m notification_relay.cli replay snapshots.json --user u-42
    python -m notification_relay.cli validate config/relay_config.yaml
"""

import typer

from notification_relay.cli.ledger import ledger_app
from notification_relay.cli.replay import replay_command
from notification_relay.cli.validate import validate_command

# Create main app
app = typer.Typer(help="notification-relay: dedup and delivery of live notifications")

# Register individual commands
app.command(name="replay")(replay_command)
app.command(name="validate")(validate_command)

# Register sub-applications
app.add_typer(ledger_app, name="ledger")

__all__ = [
    "app",
    "ledger_app",
    "replay_command",
    "validate_command",
]
