"""Observability for the notification relay.

Provides:
- Correlation ID context management for tracing processing passes
- Structured logging with correlation ID injection
- Prometheus metrics for monitoring delivery decisions

Usage:
    from notification_relay.observability import (
        configure_logging,
        correlation_id_context,
        LOCAL_DELIVERIES,
    )

    configure_logging(level="INFO")
    LOCAL_DELIVERIES.labels(outcome="presented").inc()
"""

from notification_relay.observability.context import (
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
    correlation_id_context,
    new_correlation_id,
)
from notification_relay.observability.logging import (
    configure_logging,
    add_correlation_id_processor,
    bind_context,
    clear_context,
)
from notification_relay.observability.metrics import (
    # Counters
    FEED_SNAPSHOTS,
    FEED_ERRORS,
    PROCESSING_PASSES,
    NOTIFICATIONS_EVALUATED,
    LOCAL_DELIVERIES,
    LEDGER_OPERATIONS,
    LEDGER_EVICTIONS,
    READ_STATE_CALLS,
    # Gauges
    UNREAD_COUNT,
    LEDGER_SIZE,
    # Histograms
    PASS_DURATION,
    SNAPSHOT_SIZE,
    # Registry and utilities
    REGISTRY,
    get_metrics_text,
)

__all__ = [
    # Context
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "correlation_id_context",
    "new_correlation_id",
    # Logging
    "configure_logging",
    "add_correlation_id_processor",
    "bind_context",
    "clear_context",
    # Counters
    "FEED_SNAPSHOTS",
    "FEED_ERRORS",
    "PROCESSING_PASSES",
    "NOTIFICATIONS_EVALUATED",
    "LOCAL_DELIVERIES",
    "LEDGER_OPERATIONS",
    "LEDGER_EVICTIONS",
    "READ_STATE_CALLS",
    # Gauges
    "UNREAD_COUNT",
    "LEDGER_SIZE",
    # Histograms
    "PASS_DURATION",
    "SNAPSHOT_SIZE",
    # Utilities
    "REGISTRY",
    "get_metrics_text",
]
