"""Prometheus metrics definitions for the notification relay.

Defines counters, gauges, and histograms for monitoring:
- Feed snapshot intake and processing passes
- Dedup verdicts and local delivery outcomes
- Ledger and read-state I/O
- Unread count and ledger size

Usage:
    from notification_relay.observability.metrics import (
        PROCESSING_PASSES,
        LOCAL_DELIVERIES,
        PASS_DURATION,
    )

    # Increment counter
    LOCAL_DELIVERIES.labels(outcome="presented").inc()

    # Track histogram
    with PASS_DURATION.time():
        await processor.process_snapshot(records)
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
)

# Private registry; the host process may run its own default one
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS - Monotonically increasing values
# =============================================================================

FEED_SNAPSHOTS = Counter(
    name="relay_feed_snapshots_total",
    documentation="Feed snapshots received",
    labelnames=["outcome"],  # scheduled, ignored
    registry=REGISTRY,
)

FEED_ERRORS = Counter(
    name="relay_feed_errors_total",
    documentation="Errors reported by the live feed subscription",
    registry=REGISTRY,
)

PROCESSING_PASSES = Counter(
    name="relay_processing_passes_total",
    documentation="Processing passes by status",
    labelnames=["status"],  # completed, failed, dropped, cancelled
    registry=REGISTRY,
)

NOTIFICATIONS_EVALUATED = Counter(
    name="relay_notifications_evaluated_total",
    documentation="Records evaluated for delivery by verdict",
    # truly_new, already_processed, before_session, duplicate_content
    labelnames=["verdict"],
    registry=REGISTRY,
)

LOCAL_DELIVERIES = Counter(
    name="relay_local_deliveries_total",
    documentation="Delivery gate decisions",
    labelnames=["outcome"],  # presented, suppressed_background, failed
    registry=REGISTRY,
)

LEDGER_OPERATIONS = Counter(
    name="relay_ledger_operations_total",
    documentation="Durable ledger operations",
    labelnames=["operation", "status"],  # load/save/clear, success/failed
    registry=REGISTRY,
)

LEDGER_EVICTIONS = Counter(
    name="relay_ledger_evictions_total",
    documentation="Ids evicted from ledgers by the FIFO bound",
    registry=REGISTRY,
)

READ_STATE_CALLS = Counter(
    name="relay_read_state_calls_total",
    documentation="Mark-as-read backend calls",
    labelnames=["status"],  # success, failed
    registry=REGISTRY,
)

# =============================================================================
# GAUGES - Values that can go up and down
# =============================================================================

UNREAD_COUNT = Gauge(
    name="relay_unread_count",
    documentation="Displayed unread count of the active session",
    registry=REGISTRY,
)

LEDGER_SIZE = Gauge(
    name="relay_ledger_size",
    documentation="Entries in the active session's ledger after the last pass",
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS - Distribution of values
# =============================================================================

PASS_DURATION = Histogram(
    name="relay_pass_duration_seconds",
    documentation="Processing pass duration in seconds",
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, float("inf")),
    registry=REGISTRY,
)

SNAPSHOT_SIZE = Histogram(
    name="relay_snapshot_size",
    documentation="Unread records per processed snapshot",
    buckets=(0, 1, 5, 10, 25, 50, 100, 200, 500, float("inf")),
    registry=REGISTRY,
)


def get_metrics_text() -> str:
    """Current relay metrics in Prometheus text exposition format."""
    return generate_latest(REGISTRY).decode("utf-8")
