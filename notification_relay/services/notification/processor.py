"""Notification processor: the dedup and delivery state machine.

Subscribes to a user's live feed of unread notifications and, once per
quiet burst of snapshots, decides which records are truly new:

- not already in the user's durable ledger
- created after this session started observing the feed
- not a content duplicate of an earlier record in the same snapshot

Truly-new ids are appended to the ledger (bounded, FIFO) and persisted
before each record is handed to the delivery gate, in snapshot order.

States:
    UNINITIALIZED -> INITIALIZING -> LISTENING <-> PROCESSING -> TORN_DOWN

At most one pass runs at a time. A pass that would start while another is
still running is dropped rather than queued: the feed always delivers the
full current state, so the next snapshot supersedes it.

Usage:
    processor = NotificationProcessor(feed, DedupLedger(store), gate)
    await processor.start(NotificationSession(user_id="u-1"))
    ...
    processor.teardown()
"""

import asyncio
import functools
from typing import Any, Callable, List, Optional, Sequence, Set

import structlog

from notification_relay.models.ledger import ProcessedIdLedger
from notification_relay.models.notification import (
    NotificationRecord,
    PassResult,
    ProcessorState,
    utc_now,
)
from notification_relay.models.session import NotificationSession
from notification_relay.observability.context import (
    correlation_id_context,
    new_correlation_id,
)
from notification_relay.observability.metrics import (
    FEED_ERRORS,
    FEED_SNAPSHOTS,
    LEDGER_SIZE,
    NOTIFICATIONS_EVALUATED,
    PASS_DURATION,
    PROCESSING_PASSES,
    SNAPSHOT_SIZE,
)
from notification_relay.services.notification.debounce import DebounceCoalescer
from notification_relay.services.notification.delivery_gate import DeliveryGate
from notification_relay.services.notification.fingerprint import content_fingerprint
from notification_relay.services.notification.ledger import DedupLedger
from notification_relay.services.notification.working_set import UnreadWorkingSet
from notification_relay.services.ports import LiveFeedSource, Unsubscribe
from notification_relay.utils.exceptions import FeedSubscriptionError

logger = structlog.get_logger()


class NotificationProcessor:
    """Per-session orchestrator of the dedup pipeline.

    Owns the UnreadWorkingSet and the in-memory mirror of the last loaded
    ledger. Must be driven from a single asyncio event loop; snapshots
    delivered from other threads are marshalled onto it.

    Attributes:
        state: Current ProcessorState.
        last_result: PassResult of the most recent completed pass.
    """

    def __init__(
        self,
        feed: LiveFeedSource,
        ledger: DedupLedger,
        gate: DeliveryGate,
        coalescer: Optional[DebounceCoalescer] = None,
        working_set: Optional[UnreadWorkingSet] = None,
    ) -> None:
        self._feed = feed
        self._ledger = ledger
        self._gate = gate
        self._coalescer = coalescer or DebounceCoalescer()
        self._working_set = working_set or UnreadWorkingSet()

        self.state = ProcessorState.UNINITIALIZED
        self.last_result: Optional[PassResult] = None

        self._session: Optional[NotificationSession] = None
        self._ledger_mirror = ProcessedIdLedger()
        self._unsubscribe: Optional[Unsubscribe] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pass_task: Optional["asyncio.Task[Optional[PassResult]]"] = None
        self._pass_seq = 0
        self._active_pass: Optional[int] = None
        self._ledger_io: Set["asyncio.Task[Any]"] = set()

    # ==================== Accessors ====================

    @property
    def session(self) -> Optional[NotificationSession]:
        return self._session

    @property
    def working_set(self) -> UnreadWorkingSet:
        return self._working_set

    @property
    def ledger(self) -> DedupLedger:
        return self._ledger

    @property
    def coalescer(self) -> DebounceCoalescer:
        return self._coalescer

    @property
    def passes_started(self) -> int:
        """Number of passes that have entered PROCESSING so far."""
        return self._pass_seq

    def ledger_snapshot(self) -> ProcessedIdLedger:
        """Copy of the ledger as of the last load or pass."""
        return self._ledger_mirror.copy()

    # ==================== Lifecycle ====================

    async def start(self, session: NotificationSession) -> None:
        """Load the user's ledger, then subscribe to the feed.

        The processor is LISTENING before the subscription is opened, so the
        feed's initial snapshot is processed rather than lost. Snapshots that
        reach a processor in any other state are ignored.

        Raises:
            RuntimeError: If the processor was already started.
        """
        if self.state != ProcessorState.UNINITIALIZED:
            raise RuntimeError(f"Processor cannot start from state {self.state.value}")

        self._session = session
        self._loop = asyncio.get_running_loop()
        self._set_state(ProcessorState.INITIALIZING)

        loaded = await self._ledger_call(self._ledger.load, session.user_id)

        # Torn down while the ledger was loading
        if self.state != ProcessorState.INITIALIZING:
            return

        self._ledger_mirror = loaded
        LEDGER_SIZE.set(len(loaded))
        self._set_state(ProcessorState.LISTENING)

        try:
            self._unsubscribe = self._feed.subscribe(
                session.user_id, self.on_snapshot, self.on_feed_error
            )
        except Exception as e:
            FEED_ERRORS.inc()
            logger.error(
                "feed_subscribe_error",
                user_id=session.user_id,
                error=str(e),
            )
            return

        logger.info(
            "notification_processor_started",
            user_id=session.user_id,
            session_started_at=session.started_at.isoformat(),
            ledger_size=len(loaded),
        )

    def teardown(self) -> None:
        """Stop everything before returning.

        Cancels the pending coalescer timer and any in-flight pass, drops the
        feed subscription and discards in-memory state. The durable ledger is
        kept for the next session.
        """
        self._coalescer.cancel()
        self._cancel_pass()

        if self._unsubscribe is not None:
            try:
                self._unsubscribe()
            except Exception as e:
                logger.error("feed_unsubscribe_error", error=str(e))
            self._unsubscribe = None

        user_id = self._session.user_id if self._session else None
        self._working_set.clear()
        self._ledger_mirror = ProcessedIdLedger()
        self._session = None
        self._set_state(ProcessorState.TORN_DOWN)

        logger.info("notification_processor_torn_down", user_id=user_id)

    def reset_session(self) -> None:
        """Start over for the current user (the "clear all" action).

        Cancels pending and in-flight work, releases the processing guard,
        empties the working set and ledger mirror and moves SessionStart to
        now. The caller clears the durable ledger, after settle_ledger_io().
        """
        if self._session is None:
            return

        self._coalescer.cancel()
        self._cancel_pass()

        self._working_set.clear()
        self._ledger_mirror = ProcessedIdLedger()
        LEDGER_SIZE.set(0)
        self._session = self._session.restarted()

        if self.state == ProcessorState.PROCESSING:
            self._set_state(ProcessorState.LISTENING)

        logger.info(
            "notification_session_reset",
            user_id=self._session.user_id,
            session_started_at=self._session.started_at.isoformat(),
        )

    async def drain(self) -> Optional[PassResult]:
        """Wait for the in-flight pass, if any, and return its result."""
        task = self._pass_task
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            return None

    async def settle_ledger_io(self) -> None:
        """Wait for ledger reads and writes still running in worker threads.

        Cancelling a pass does not stop a store call it already handed to a
        thread. Callers that are about to clear the durable ledger wait here
        first, so a late write cannot bring the cleared ids back.
        """
        pending = list(self._ledger_io)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ==================== Feed callbacks ====================

    def on_snapshot(self, records: Sequence[NotificationRecord]) -> None:
        """Feed callback; safe to call from any thread."""
        if self._dispatch(self._handle_snapshot, list(records)):
            return
        FEED_SNAPSHOTS.labels(outcome="ignored").inc()

    def on_feed_error(self, error: BaseException) -> None:
        """Feed error callback; safe to call from any thread."""
        if not self._dispatch(self._handle_feed_error, error):
            FEED_ERRORS.inc()
            logger.error("feed_subscription_error", error=str(error), dispatched=False)

    def _handle_snapshot(self, records: List[NotificationRecord]) -> None:
        if self.state not in (ProcessorState.LISTENING, ProcessorState.PROCESSING):
            FEED_SNAPSHOTS.labels(outcome="ignored").inc()
            logger.debug(
                "feed_snapshot_ignored",
                state=self.state.value,
                snapshot_size=len(records),
            )
            return

        FEED_SNAPSHOTS.labels(outcome="scheduled").inc()
        self._coalescer.schedule(functools.partial(self._start_pass, records))

    def _handle_feed_error(self, error: BaseException) -> None:
        FEED_ERRORS.inc()
        wrapped = (
            error
            if isinstance(error, FeedSubscriptionError)
            else FeedSubscriptionError(str(error))
        )
        logger.error(
            "feed_subscription_error",
            user_id=self._session.user_id if self._session else None,
            error=str(wrapped),
            error_type=type(error).__name__,
        )
        # An in-flight pass keeps the guard and releases it when it finishes
        if self.state == ProcessorState.PROCESSING and self._active_pass is None:
            self._set_state(ProcessorState.LISTENING)

    def _dispatch(self, handler, arg) -> bool:
        """Run handler on the session loop, hopping threads if needed."""
        loop = self._loop
        if loop is None:
            return False

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            handler(arg)
            return True

        try:
            loop.call_soon_threadsafe(handler, arg)
        except RuntimeError:
            # Loop already closed
            logger.warning("feed_callback_after_loop_closed")
            return False
        return True

    # ==================== Processing ====================

    async def process_snapshot(
        self, records: Sequence[NotificationRecord]
    ) -> Optional[PassResult]:
        """Run one pass over a snapshot immediately, bypassing the coalescer.

        Returns:
            PassResult, or None if the pass was dropped or failed.
        """
        token = self._acquire()
        if token is None:
            return None
        return await self._run_pass(token, list(records))

    def _start_pass(self, records: List[NotificationRecord]) -> None:
        """Coalescer work: start a pass task for the burst's last snapshot."""
        if self._loop is None:
            return
        token = self._acquire()
        if token is None:
            return
        self._pass_task = self._loop.create_task(self._run_pass(token, records))

    def _acquire(self) -> Optional[int]:
        """Enter PROCESSING, or report why a pass cannot run."""
        if self.state == ProcessorState.PROCESSING:
            PROCESSING_PASSES.labels(status="dropped").inc()
            logger.info("notification_pass_dropped", reason="already_processing")
            return None
        if self.state != ProcessorState.LISTENING:
            logger.debug("notification_pass_skipped", state=self.state.value)
            return None

        self._pass_seq += 1
        self._active_pass = self._pass_seq
        self._set_state(ProcessorState.PROCESSING)
        return self._pass_seq

    def _release(self, token: int) -> None:
        if self._active_pass == token and self.state == ProcessorState.PROCESSING:
            self._active_pass = None
            self._set_state(ProcessorState.LISTENING)

    def _cancel_pass(self) -> None:
        self._active_pass = None
        task = self._pass_task
        if task is not None and not task.done():
            task.cancel()
        self._pass_task = None

    async def _ledger_call(self, func: Callable[..., Any], *args: Any) -> Any:
        # Shielded: cancelling the caller leaves the thread work tracked
        task = asyncio.ensure_future(asyncio.to_thread(func, *args))
        self._ledger_io.add(task)
        task.add_done_callback(self._ledger_io.discard)
        return await asyncio.shield(task)

    async def _run_pass(
        self, token: int, records: List[NotificationRecord]
    ) -> Optional[PassResult]:
        session = self._session
        if session is None:
            self._release(token)
            return None

        try:
            with correlation_id_context(new_correlation_id("pass")):
                with PASS_DURATION.time():
                    result = await self._evaluate_and_deliver(session, records)
            PROCESSING_PASSES.labels(status="completed").inc()
            self.last_result = result
            return result

        except asyncio.CancelledError:
            PROCESSING_PASSES.labels(status="cancelled").inc()
            logger.info("notification_pass_cancelled", user_id=session.user_id)
            raise

        except Exception as e:
            PROCESSING_PASSES.labels(status="failed").inc()
            logger.error(
                "notification_pass_error",
                user_id=session.user_id,
                error=str(e),
                exc_info=True,
            )
            return None

        finally:
            self._release(token)

    async def _evaluate_and_deliver(
        self,
        session: NotificationSession,
        records: List[NotificationRecord],
    ) -> PassResult:
        SNAPSHOT_SIZE.observe(len(records))

        # 1. Working set mirrors the snapshot wholesale
        self._working_set.replace(records)

        # 2. Always judge against the freshest persisted ledger
        ledger = await self._ledger_call(self._ledger.load, session.user_id)

        # 3. Filter in snapshot order
        truly_new = self._select_truly_new(session, records, ledger)
        result = PassResult(
            snapshot_size=len(records),
            truly_new_ids=[r.id for r in truly_new],
        )

        # 4. Record before delivering, then deliver in snapshot order
        if truly_new:
            ledger.extend(r.id for r in truly_new)
            persisted = await self._ledger_call(
                self._ledger.save, session.user_id, ledger
            )
            result.ledger_persisted = persisted
            if not persisted:
                logger.warning(
                    "ledger_persist_failed",
                    user_id=session.user_id,
                    truly_new=len(truly_new),
                )

            for record in truly_new:
                if self._gate.deliver(record):
                    result.presented_ids.append(record.id)
                else:
                    result.suppressed_ids.append(record.id)

        self._ledger_mirror = ledger
        LEDGER_SIZE.set(len(ledger))
        result.ledger_size = len(ledger)
        result.completed_at = utc_now()

        logger.info(
            "notification_pass_completed",
            user_id=session.user_id,
            snapshot_size=result.snapshot_size,
            truly_new=result.truly_new_count,
            presented=len(result.presented_ids),
            suppressed=len(result.suppressed_ids),
            ledger_size=result.ledger_size,
        )
        return result

    def _select_truly_new(
        self,
        session: NotificationSession,
        records: List[NotificationRecord],
        ledger: ProcessedIdLedger,
    ) -> List[NotificationRecord]:
        seen_fingerprints: set[str] = set()
        selected_ids: set[str] = set()
        truly_new: List[NotificationRecord] = []

        for record in records:
            # Every record claims its fingerprint, eligible or not
            fingerprint = content_fingerprint(record)
            unique_content = fingerprint not in seen_fingerprints
            seen_fingerprints.add(fingerprint)

            if record.id in ledger or record.id in selected_ids:
                verdict = "already_processed"
            elif record.created_at <= session.started_at:
                verdict = "before_session"
            elif not unique_content:
                verdict = "duplicate_content"
            else:
                verdict = "truly_new"
                selected_ids.add(record.id)
                truly_new.append(record)

            NOTIFICATIONS_EVALUATED.labels(verdict=verdict).inc()

        return truly_new

    def _set_state(self, state: ProcessorState) -> None:
        if state != self.state:
            logger.debug(
                "processor_state_changed",
                from_state=self.state.value,
                to_state=state.value,
            )
        self.state = state
