"""Structured logging for the notification relay.

structlog is configured once per process (CLI start-up or host start-up).
Every entry carries:
- correlation_id: the processing pass or read action that emitted it
- user_id: bound for the lifetime of a signed-in session
- level and ISO timestamp

Usage:
    from notification_relay.observability.logging import configure_logging

    configure_logging(level="INFO", json_output=True)

    logger = structlog.get_logger()
    logger.info("notification_pass_completed", truly_new=2)
    # {"event": "notification_pass_completed", "truly_new": 2,
    #  "user_id": "u-42", "correlation_id": "pass-3f2a9c1b7d4e", ...}
"""

import logging
import sys
from typing import Any, Optional, TextIO

import structlog
from structlog.typing import EventDict, WrappedLogger

from notification_relay.observability.context import get_correlation_id

SESSION_KEYS = ("user_id",)

NO_CORRELATION = "none"


def add_correlation_id_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Stamp the active pass/action correlation id ("none" outside one)."""
    event_dict.setdefault("correlation_id", get_correlation_id() or NO_CORRELATION)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    add_timestamp: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """Set up structlog for the relay.

    Args:
        level: Minimum level name; unknown names fall back to INFO.
        json_output: JSON lines when True, coloured console lines otherwise.
        add_timestamp: Prepend an ISO-8601 timestamp.
        stream: Destination, stderr by default so CLI output stays clean.
    """
    min_level = logging.getLevelName(level.upper())
    if not isinstance(min_level, int):
        min_level = logging.INFO

    chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id_processor,
        structlog.processors.add_log_level,
    ]
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        (
            structlog.processors.JSONRenderer()
            if json_output
            else structlog.dev.ConsoleRenderer(colors=True)
        ),
    ]

    structlog.configure(
        processors=chain,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        # Re-configuration (tests, repeated CLI invocations) must take effect
        cache_logger_on_first_use=False,
    )


def bind_context(**context: Any) -> None:
    """Attach key/values to every later entry in this context (and its tasks)."""
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Forget the session keys bound at sign-in; other bindings are kept."""
    structlog.contextvars.unbind_contextvars(*SESSION_KEYS)
