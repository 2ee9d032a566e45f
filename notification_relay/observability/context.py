"""Correlation ID context for tracing processing passes.

Each processing pass and each read-state action runs under its own
correlation id so every log line it emits can be grouped, even when
several sessions share one event loop.

Usage:
    from notification_relay.observability.context import correlation_id_context

    with correlation_id_context(new_correlation_id("pass")):
        await run_pass()
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Optional

# ContextVar copies into tasks created inside the context
_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def new_correlation_id(prefix: Optional[str] = None) -> str:
    """Generate a fresh id, optionally prefixed (e.g. "pass-1a2b3c4d")."""
    short = uuid.uuid4().hex[:12]
    return f"{prefix}-{short}" if prefix else short


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context.

    Args:
        corr_id: Optional correlation ID. If None, one is generated.

    Returns:
        The correlation ID that was set.
    """
    if corr_id is None:
        corr_id = new_correlation_id()
    _correlation_id_var.set(corr_id)
    return corr_id


def get_correlation_id() -> Optional[str]:
    """Current correlation ID, or None outside any pass/action."""
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


@contextmanager
def correlation_id_context(
    corr_id: Optional[str] = None,
) -> Generator[str, None, None]:
    """Scope a correlation ID; the previous one is restored on exit.

    Args:
        corr_id: Optional correlation ID. If None, one is generated.

    Yields:
        The correlation ID in effect inside the block.
    """
    if corr_id is None:
        corr_id = new_correlation_id()

    token = _correlation_id_var.set(corr_id)
    try:
        yield corr_id
    finally:
        _correlation_id_var.reset(token)
