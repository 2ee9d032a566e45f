"""Helpers shared by the relay CLI commands."""

import functools
from pathlib import Path
from typing import Callable, TypeVar

import structlog
import typer
from pydantic import ValidationError

from notification_relay.models.config import RelayConfig
from notification_relay.observability.logging import configure_logging
from notification_relay.services import config_manager
from notification_relay.services.config_manager import (
    ConfigManager,
    ConfigValidationError,
)
from notification_relay.services.kv_store import DiskCacheKeyValueStore
from notification_relay.services.notification.ledger import DedupLedger
from notification_relay.utils.exceptions import RelayError

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path(config_manager.DEFAULT_CONFIG_PATH)

F = TypeVar("F", bound=Callable)


def load_config(config_path: Path) -> RelayConfig:
    """Load relay settings and configure logging from them.

    A missing file means built-in defaults; an invalid one ends the command.

    Raises:
        typer.Exit: If the configuration is invalid.
    """
    try:
        config = ConfigManager(config_path=str(config_path)).load_or_default()
    except ConfigValidationError as e:
        display_error(f"Configuration Error: {e}")
        raise typer.Exit(code=1)

    configure_logging(
        level=config.logging.level,
        json_output=config.logging.json_output,
    )
    return config


def open_ledger(config: RelayConfig) -> DedupLedger:
    """DedupLedger over the configured diskcache store."""
    store = DiskCacheKeyValueStore(config.ledger.store_dir)
    return DedupLedger(store, key_prefix=config.ledger.key_prefix)


def handle_errors(func: F) -> F:
    """Turn unexpected failures into a red message and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.Abort):
            raise
        except ValidationError as e:
            logger.warning("cli_input_invalid", command=func.__name__)
            display_error(f"Error: invalid input: {e}")
        except RelayError as e:
            logger.error("cli_relay_error", command=func.__name__, error=str(e))
            display_error(f"Error: {e}")
        except Exception as e:
            logger.exception("command_failed", command=func.__name__)
            display_error(f"Error: {e}")
        raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def _styled(color: str) -> Callable[[str], None]:
    def show(message: str) -> None:
        typer.secho(message, fg=color)

    return show


display_success = _styled(typer.colors.GREEN)
display_warning = _styled(typer.colors.YELLOW)
display_error = _styled(typer.colors.RED)
display_info = _styled(typer.colors.CYAN)
