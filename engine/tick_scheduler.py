"""Per-timer recurring tick schedules.

Each running timer owns at most one schedule. Cancelling a schedule is
synchronous: once ``cancel`` returns, its callback will not run again.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]


class TickScheduler(ABC):
    """Owns the recurring tick of every running timer."""

    @abstractmethod
    def schedule(self, timer_id: int, callback: TickCallback):
        """Start ticking a timer, replacing any existing schedule for it.

        Args:
            timer_id: Timer to tick
            callback: Called with the timer id on every tick
        """

    @abstractmethod
    def cancel(self, timer_id: int):
        """Stop ticking a timer. Unknown ids are ignored."""

    @abstractmethod
    def is_scheduled(self, timer_id: int) -> bool:
        """Whether the timer currently has a schedule."""

    def cancel_all(self):
        """Stop every schedule."""
        for timer_id in self.scheduled_ids():
            self.cancel(timer_id)

    @abstractmethod
    def scheduled_ids(self) -> list[int]:
        """Ids of all timers that currently have a schedule."""


class AsyncioTickScheduler(TickScheduler):
    """Ticks timers from an asyncio event loop.

    Ticks are anchored to the time the schedule started, so a slow callback
    delays one tick without shifting the ones after it.
    """

    def __init__(
        self, interval: float = 1.0, loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        """Initialize the scheduler.

        Args:
            interval: Seconds between ticks
            loop: Event loop to schedule on; defaults to the running loop at
                the time a timer is first scheduled
        """
        self.interval = interval
        self._loop = loop
        self._handles: dict[int, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, timer_id: int, callback: TickCallback):
        # Resolve the loop first so a missing loop leaves any existing schedule intact
        loop = self._get_loop()
        self.cancel(timer_id)
        self._arm(timer_id, callback, loop.time() + self.interval)
        logger.debug(f"Scheduled ticks for timer {timer_id} every {self.interval}s")

    def _arm(self, timer_id: int, callback: TickCallback, deadline: float):
        self._handles[timer_id] = self._get_loop().call_at(
            deadline, self._fire, timer_id, callback, deadline
        )

    def _fire(self, timer_id: int, callback: TickCallback, deadline: float):
        # Re-arm before running so a callback that cancels also cancels the next tick
        self._arm(timer_id, callback, deadline + self.interval)
        try:
            callback(timer_id)
        except Exception as e:
            logger.error(f"Error ticking timer {timer_id}: {e}")

    def cancel(self, timer_id: int):
        handle = self._handles.pop(timer_id, None)
        if handle is not None:
            handle.cancel()
            logger.debug(f"Cancelled ticks for timer {timer_id}")

    def is_scheduled(self, timer_id: int) -> bool:
        return timer_id in self._handles

    def scheduled_ids(self) -> list[int]:
        return list(self._handles)


class ManualTickScheduler(TickScheduler):
    """Records schedules and only ticks when told to.

    Used where no event loop runs, such as one-shot CLI commands, and to drive
    ticks deterministically.
    """

    def __init__(self):
        self._callbacks: dict[int, TickCallback] = {}

    def schedule(self, timer_id: int, callback: TickCallback):
        self._callbacks[timer_id] = callback

    def cancel(self, timer_id: int):
        self._callbacks.pop(timer_id, None)

    def is_scheduled(self, timer_id: int) -> bool:
        return timer_id in self._callbacks

    def scheduled_ids(self) -> list[int]:
        return list(self._callbacks)

    def tick(self, timer_id: int):
        """Run one tick of a scheduled timer. Unscheduled timers are skipped."""
        callback = self._callbacks.get(timer_id)
        if callback is not None:
            callback(timer_id)

    def tick_all(self):
        """Run one tick of every scheduled timer, in scheduling order."""
        for timer_id in self.scheduled_ids():
            self.tick(timer_id)
