"""Tests for structured logging configuration."""

import io
import json

import structlog

from notification_relay.observability.context import (
    clear_correlation_id,
    correlation_id_context,
    set_correlation_id,
)
from notification_relay.observability.logging import (
    add_correlation_id_processor,
    bind_context,
    clear_context,
    configure_logging,
)


class TestAddCorrelationIdProcessor:
    """Tests for add_correlation_id_processor."""

    def test_adds_correlation_id_when_set(self):
        set_correlation_id("pass-1234")

        result = add_correlation_id_processor(None, "info", {"event": "x"})

        assert result["correlation_id"] == "pass-1234"
        clear_correlation_id()

    def test_adds_none_marker_when_not_set(self):
        clear_correlation_id()

        result = add_correlation_id_processor(None, "info", {"event": "x"})

        assert result["correlation_id"] == "none"

    def test_preserves_existing_fields(self):
        clear_correlation_id()

        result = add_correlation_id_processor(
            None, "info", {"event": "x", "truly_new": 2}
        )

        assert result["truly_new"] == 2


class TestConfigureLogging:
    """Tests for configure_logging output."""

    def teardown_method(self):
        clear_context()
        clear_correlation_id()

    def test_json_output_carries_correlation_id(self, capsys):
        configure_logging(level="INFO", json_output=True)

        with correlation_id_context("pass-abc"):
            structlog.get_logger().info("notification_pass_completed", truly_new=1)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "notification_pass_completed"
        assert entry["truly_new"] == 1
        assert entry["correlation_id"] == "pass-abc"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_level_filtering(self, capsys):
        configure_logging(level="WARNING", json_output=True)

        structlog.get_logger().info("quiet_event")
        structlog.get_logger().warning("loud_event")

        err = capsys.readouterr().err
        assert "quiet_event" not in err
        assert "loud_event" in err

    def test_timestamp_disabled(self, capsys):
        configure_logging(level="INFO", json_output=True, add_timestamp=False)

        structlog.get_logger().info("no_time")

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "timestamp" not in entry

    def test_console_output(self, capsys):
        configure_logging(level="DEBUG", json_output=False)

        structlog.get_logger().debug("console_event")

        assert "console_event" in capsys.readouterr().err

    def test_custom_stream(self):
        stream = io.StringIO()
        configure_logging(level="INFO", json_output=True, stream=stream)

        structlog.get_logger().info("to_stream", ledger_size=3)

        entry = json.loads(stream.getvalue().strip())
        assert entry["event"] == "to_stream"
        assert entry["ledger_size"] == 3

    def test_unknown_level_falls_back_to_info(self, capsys):
        configure_logging(level="VERBOSE", json_output=True)

        structlog.get_logger().debug("hidden")
        structlog.get_logger().info("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err


class TestBindContext:
    """Tests for bind_context and clear_context."""

    def teardown_method(self):
        clear_context()

    def test_bound_context_in_output(self, capsys):
        configure_logging(level="INFO", json_output=True)
        bind_context(user_id="u-42")

        structlog.get_logger().info("relay_signed_in")

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert entry["user_id"] == "u-42"

    def test_clear_context_drops_session_keys_only(self, capsys):
        configure_logging(level="INFO", json_output=True)
        bind_context(user_id="u-42", host="mobile")
        clear_context()

        structlog.get_logger().info("relay_signed_out")

        entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "user_id" not in entry
        assert entry["host"] == "mobile"

    def test_clear_without_context_is_safe(self):
        clear_context()
        clear_context()
