"""Tests for Prometheus metrics definitions."""

from notification_relay.observability.metrics import (
    # Counters
    FEED_SNAPSHOTS,
    LEDGER_OPERATIONS,
    LOCAL_DELIVERIES,
    NOTIFICATIONS_EVALUATED,
    PROCESSING_PASSES,
    # Gauges
    LEDGER_SIZE,
    UNREAD_COUNT,
    # Histograms
    PASS_DURATION,
    # Utilities
    REGISTRY,
    get_metrics_text,
)
from notification_relay.services.notification.working_set import UnreadWorkingSet


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestCounterMetrics:
    """Tests for counter metrics."""

    def test_local_deliveries_counter(self):
        initial = _sample("relay_local_deliveries_total", outcome="presented")

        LOCAL_DELIVERIES.labels(outcome="presented").inc()

        assert _sample("relay_local_deliveries_total", outcome="presented") == initial + 1

    def test_verdict_labels(self):
        for verdict in ("truly_new", "already_processed", "before_session", "duplicate_content"):
            NOTIFICATIONS_EVALUATED.labels(verdict=verdict).inc()

        assert _sample("relay_notifications_evaluated_total", verdict="before_session") >= 1

    def test_ledger_operations_two_labels(self):
        initial = _sample(
            "relay_ledger_operations_total", operation="save", status="failed"
        )

        LEDGER_OPERATIONS.labels(operation="save", status="failed").inc()

        assert (
            _sample("relay_ledger_operations_total", operation="save", status="failed")
            == initial + 1
        )

    def test_pass_and_snapshot_outcomes(self):
        dropped = _sample("relay_processing_passes_total", status="dropped")
        ignored = _sample("relay_feed_snapshots_total", outcome="ignored")

        PROCESSING_PASSES.labels(status="dropped").inc()
        FEED_SNAPSHOTS.labels(outcome="ignored").inc()

        assert _sample("relay_processing_passes_total", status="dropped") == dropped + 1
        assert _sample("relay_feed_snapshots_total", outcome="ignored") == ignored + 1


class TestGaugeMetrics:
    """Tests for gauge metrics."""

    def test_unread_count_tracks_working_set(self, make_record):
        working_set = UnreadWorkingSet()

        working_set.replace([make_record("a"), make_record("b")])
        assert _sample("relay_unread_count") == 2

        working_set.remove("a")
        assert _sample("relay_unread_count") == 1

        working_set.clear()
        assert _sample("relay_unread_count") == 0

    def test_ledger_size_set(self):
        LEDGER_SIZE.set(200)

        assert _sample("relay_ledger_size") == 200


class TestHistogramMetrics:
    """Tests for histogram metrics."""

    def test_pass_duration_timer(self):
        initial = _sample("relay_pass_duration_seconds_count")

        with PASS_DURATION.time():
            pass

        assert _sample("relay_pass_duration_seconds_count") == initial + 1


class TestExposition:
    """Tests for metrics text output."""

    def test_metrics_text_contains_relay_metrics(self):
        UNREAD_COUNT.set(3)

        text = get_metrics_text()

        assert "relay_unread_count 3.0" in text
        assert "relay_local_deliveries_total" in text
