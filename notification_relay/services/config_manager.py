import os
from pathlib import Path
from string import Template
from typing import Any, Dict, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from notification_relay.models.config import RelayConfig

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = "config/relay_config.yaml"


class ConfigValidationError(Exception):
    """Relay configuration could not be read or failed validation"""

    pass


class ConfigManager:
    """Loads relay settings from YAML.

    ${VAR} references are filled from the environment after `.env` is
    loaded; unknown variables are left as written.
    """

    def __init__(
        self,
        config_path: str = DEFAULT_CONFIG_PATH,
        load_env: bool = True,
    ):
        self.config_path = Path(config_path)
        self.env_loaded = not load_env
        self._config: Optional[RelayConfig] = None

    def load_config(self) -> RelayConfig:
        """Read, substitute and validate the config file (cached).

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigValidationError: If it cannot be parsed or is invalid
        """
        if self._config is not None:
            return self._config

        if not self.env_loaded:
            load_dotenv()
            self.env_loaded = True

        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        document = self._parse(self._read())

        try:
            config = RelayConfig(**document)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}")

        logger.info(
            "config_loaded",
            path=str(self.config_path),
            store_dir=config.ledger.store_dir,
            log_level=config.logging.level,
        )
        self._config = config
        return config

    def load_or_default(self) -> RelayConfig:
        """Like load_config, but a missing file yields the built-in defaults"""
        if self.config_path.exists():
            return self.load_config()

        logger.debug("config_defaults_used", path=str(self.config_path))
        self._config = RelayConfig()
        return self._config

    def _read(self) -> str:
        try:
            return self.config_path.read_text()
        except OSError as e:
            raise ConfigValidationError(f"Failed to read {self.config_path}: {e}")

    def _parse(self, raw: str) -> Dict[str, Any]:
        substituted = Template(raw).safe_substitute(os.environ)
        try:
            document = yaml.safe_load(substituted)
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Malformed YAML in {self.config_path}: {e}")

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigValidationError(
                "Configuration root must be a mapping of sections "
                f"(got {type(document).__name__})"
            )
        return document
