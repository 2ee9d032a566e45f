"""Read-state coordination.

Marks records read upstream and mirrors the result in the processor's
UnreadWorkingSet. Read state and dedup state are independent: marking a
record read never touches the ledger, and a later snapshot still judges the
record against the ledger alone.
"""

import asyncio
from typing import Optional

import structlog

from notification_relay.models.notification import ProcessorState
from notification_relay.observability.context import (
    correlation_id_context,
    new_correlation_id,
)
from notification_relay.observability.metrics import READ_STATE_CALLS
from notification_relay.services.notification.processor import NotificationProcessor
from notification_relay.services.ports import ReadStateBackend

logger = structlog.get_logger()


class ReadStateCoordinator:
    """Mark-as-read actions for the active session."""

    def __init__(
        self,
        backend: ReadStateBackend,
        processor: NotificationProcessor,
    ) -> None:
        self._backend = backend
        self._processor = processor

    async def mark_read(self, notification_id: str) -> bool:
        """Mark one record read.

        Local state only changes once the backend confirms; on failure the
        working set is left as is.

        Args:
            notification_id: Record to mark read.

        Returns:
            True if the backend call succeeded.
        """
        with correlation_id_context(new_correlation_id("read")):
            if not await self._call_backend(notification_id):
                return False

            removed = self._processor.working_set.remove(notification_id)
            logger.info(
                "notification_marked_read",
                notification_id=notification_id,
                was_listed=removed,
                unread_count=self._processor.working_set.count,
            )
            return True

    async def mark_all_read(self) -> int:
        """Mark every listed record read, concurrently.

        Not all-or-nothing: the working set is cleared and the count zeroed
        regardless of individual failures. The next snapshot restores any
        record the backend still reports unread.

        Returns:
            Number of records the backend confirmed.
        """
        with correlation_id_context(new_correlation_id("read-all")):
            ids = self._processor.working_set.ids()
            outcomes = await asyncio.gather(
                *(self._call_backend(notification_id) for notification_id in ids)
            )
            succeeded = sum(1 for ok in outcomes if ok)

            self._processor.working_set.clear()
            logger.info(
                "notifications_marked_read",
                requested=len(ids),
                succeeded=succeeded,
                failed=len(ids) - succeeded,
            )
            return succeeded

    async def clear_all(self) -> bool:
        """Forget everything for the current user and start a fresh session.

        Returns:
            True if the durable ledger was cleared.
        """
        session = self._processor.session
        if session is None or self._processor.state == ProcessorState.TORN_DOWN:
            logger.warning("clear_all_without_session")
            return False

        self._processor.reset_session()
        await self._processor.settle_ledger_io()
        return await asyncio.to_thread(self._processor.ledger.clear, session.user_id)

    async def _call_backend(self, notification_id: str) -> bool:
        try:
            await self._backend.mark_read(notification_id)
        except Exception as e:
            READ_STATE_CALLS.labels(status="failed").inc()
            logger.error(
                "mark_read_error",
                notification_id=notification_id,
                error=str(e),
            )
            return False

        READ_STATE_CALLS.labels(status="success").inc()
        return True

    @property
    def user_id(self) -> Optional[str]:
        session = self._processor.session
        return session.user_id if session else None
