"""Debounce coalescer for bursts of feed snapshots.

A feed may emit several snapshots in quick succession while the backend
settles a write. schedule() restarts a quiet-period timer on every call;
only the last scheduled work runs, once, after the burst goes quiet.

The timer primitive is injectable so tests can drive it with a fake clock:

    coalescer = DebounceCoalescer(timer_factory=fake_clock.call_later)
    coalescer.schedule(lambda: print("fired"))
    fake_clock.advance(0.5)
"""

import asyncio
from typing import Callable, Optional, Protocol

import structlog

from notification_relay.models.notification import DEBOUNCE_QUIET_PERIOD_SECONDS

logger = structlog.get_logger()

Work = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def asyncio_timer_factory(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Arm a timer on the running event loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


class DebounceCoalescer:
    """Runs the most recently scheduled work once a quiet period elapses.

    Attributes:
        quiet_period: Seconds without a schedule() call before work runs.
    """

    def __init__(
        self,
        quiet_period: float = DEBOUNCE_QUIET_PERIOD_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self.quiet_period = quiet_period
        self._timer_factory = timer_factory or asyncio_timer_factory
        self._handle: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        """Whether a timer is armed."""
        return self._handle is not None

    def schedule(self, work: Work) -> None:
        """Replace any pending work and restart the quiet period."""
        self.cancel()
        self._generation += 1
        generation = self._generation
        self._handle = self._timer_factory(
            self.quiet_period, lambda: self._fire(generation, work)
        )

    def cancel(self) -> None:
        """Disarm the pending timer without running its work."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, generation: int, work: Work) -> None:
        # A timer that was superseded but fired anyway must not run
        if generation != self._generation or self._handle is None:
            return
        self._handle = None
        try:
            work()
        except Exception as e:
            logger.error("debounce_work_error", error=str(e), exc_info=True)
