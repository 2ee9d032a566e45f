"""Routing of notification taps to the host's navigation handler."""

from typing import Any, Callable, Dict, Optional

import structlog

logger = structlog.get_logger()

NavigationHandler = Callable[[Dict[str, Any]], None]


class NotificationNavigator:
    """Hands tapped notification payloads to a navigation handler.

    A tap that arrives before the host has registered a handler (cold start
    from a notification, for example) is kept as pending navigation until
    taken or cleared.
    """

    def __init__(self) -> None:
        self._handler: Optional[NavigationHandler] = None
        self._pending: Optional[Dict[str, Any]] = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def set_handler(self, handler: Optional[NavigationHandler]) -> None:
        self._handler = handler

    def handle_tap(self, data: Optional[Dict[str, Any]]) -> bool:
        """Route a tapped notification's payload.

        Returns:
            True if a handler received it, False if it was stored as pending
            (or there was nothing to route).
        """
        if not data:
            return False

        if self._handler is None:
            self._pending = dict(data)
            logger.info("navigation_pending", screen=data.get("screen"))
            return False

        try:
            self._handler(dict(data))
        except Exception as e:
            logger.error("navigation_handler_error", error=str(e))
            return False

        logger.debug("navigation_routed", screen=data.get("screen"))
        return True

    def take_pending(self) -> Optional[Dict[str, Any]]:
        """Return and forget the pending navigation, if any."""
        pending, self._pending = self._pending, None
        return pending

    def clear(self) -> None:
        self._pending = None
