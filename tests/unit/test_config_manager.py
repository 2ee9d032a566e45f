from pathlib import Path

import pytest
import yaml

from notification_relay.services.config_manager import (
    ConfigManager,
    ConfigValidationError,
)


@pytest.fixture
def valid_config_file(tmp_path):
    config_content = {
        "ledger": {
            "store_dir": str(tmp_path / "ledger"),
            "key_prefix": "seen_",
        },
        "delivery": {"default_screen": "inbox"},
        "logging": {"level": "debug", "json_output": False},
    }
    config_file = tmp_path / "relay_config.yaml"
    with open(config_file, "w") as f:
        yaml.dump(config_content, f)
    return config_file


def test_load_valid_config(valid_config_file, tmp_path):
    manager = ConfigManager(config_path=str(valid_config_file), load_env=False)

    config = manager.load_config()
    assert config.ledger.store_dir == str(tmp_path / "ledger")
    assert config.ledger.key_prefix == "seen_"
    assert config.delivery.default_screen == "inbox"
    assert config.logging.level == "DEBUG"
    assert config.logging.json_output is False


def test_config_is_cached(valid_config_file):
    manager = ConfigManager(config_path=str(valid_config_file), load_env=False)

    assert manager.load_config() is manager.load_config()


def test_load_missing_config():
    manager = ConfigManager(config_path="nonexistent.yaml", load_env=False)
    with pytest.raises(FileNotFoundError):
        manager.load_config()


def test_load_or_default_without_file(tmp_path):
    manager = ConfigManager(config_path=str(tmp_path / "absent.yaml"), load_env=False)

    config = manager.load_or_default()
    assert config.ledger.key_prefix == "processed_notifications_"
    assert config.delivery.default_screen == "marketplace"


def test_env_substitution(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAY_LEDGER_DIR", str(tmp_path / "from_env"))
    config_file = tmp_path / "relay_config.yaml"
    config_file.write_text("ledger:\n  store_dir: ${RELAY_LEDGER_DIR}\n")

    manager = ConfigManager(config_path=str(config_file), load_env=False)

    assert manager.load_config().ledger.store_dir == str(tmp_path / "from_env")


def test_unset_env_var_left_verbatim(tmp_path, monkeypatch):
    monkeypatch.delenv("RELAY_UNSET_SCREEN", raising=False)
    config_file = tmp_path / "relay_config.yaml"
    config_file.write_text("delivery:\n  default_screen: ${RELAY_UNSET_SCREEN}\n")

    manager = ConfigManager(config_path=str(config_file), load_env=False)

    assert manager.load_config().delivery.default_screen == "${RELAY_UNSET_SCREEN}"


def test_empty_file_uses_defaults(tmp_path):
    config_file = tmp_path / "relay_config.yaml"
    config_file.write_text("")

    manager = ConfigManager(config_path=str(config_file), load_env=False)

    assert manager.load_config().logging.level == "INFO"


def test_invalid_yaml(tmp_path):
    config_file = tmp_path / "relay_config.yaml"
    config_file.write_text("ledger: [unclosed\n")

    manager = ConfigManager(config_path=str(config_file), load_env=False)
    with pytest.raises(ConfigValidationError):
        manager.load_config()


def test_non_mapping_root(tmp_path):
    config_file = tmp_path / "relay_config.yaml"
    config_file.write_text("- just\n- a list\n")

    manager = ConfigManager(config_path=str(config_file), load_env=False)
    with pytest.raises(ConfigValidationError, match="mapping"):
        manager.load_config()


def test_unknown_section_rejected(tmp_path):
    config_file = tmp_path / "relay_config.yaml"
    config_file.write_text("scheduler:\n  enabled: true\n")

    manager = ConfigManager(config_path=str(config_file), load_env=False)
    with pytest.raises(ConfigValidationError, match="Invalid configuration"):
        manager.load_config()


def test_invalid_logging_level(tmp_path):
    config_file = tmp_path / "relay_config.yaml"
    config_file.write_text("logging:\n  level: chatty\n")

    manager = ConfigManager(config_path=str(config_file), load_env=False)
    with pytest.raises(ConfigValidationError):
        manager.load_config()


def test_shipped_config_is_valid():
    shipped = Path(__file__).parents[2] / "config" / "relay_config.yaml"
    manager = ConfigManager(config_path=str(shipped), load_env=False)

    config = manager.load_config()
    assert config.ledger.key_prefix == "processed_notifications_"
