"""Validate command: check a relay config file without running anything."""

from pathlib import Path

import typer

from notification_relay.cli.utils import display_error, display_success, handle_errors
from notification_relay.services.config_manager import ConfigManager


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Parse a relay config, substituting ${VAR}s, and report problems."""
    try:
        config = ConfigManager(config_path=str(config_path)).load_config()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    display_success(
        f"Configuration is valid (ledger store: {config.ledger.store_dir}, "
        f"log level: {config.logging.level})"
    )
