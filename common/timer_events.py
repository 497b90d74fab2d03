"""Timer lifecycle notifications.

Provides the observer interface renderers and aggregators implement, and the
bus the timer engine publishes created/updated/deleted events through.
"""

import logging
from enum import Enum
from typing import Any

from common.timer_models import TimerState

logger = logging.getLogger(__name__)


class TimerEventType(Enum):
    """Lifecycle events published for every timer."""

    TIMER_CREATED = "timer_created"
    TIMER_UPDATED = "timer_updated"
    TIMER_DELETED = "timer_deleted"


class TimerObserver:
    """Receives timer lifecycle notifications.

    Subclasses override the callbacks they care about; the defaults do nothing.
    """

    def on_timer_created(self, timer: TimerState) -> None:
        pass

    def on_timer_updated(self, timer: TimerState) -> None:
        pass

    def on_timer_deleted(self, timer_id: int) -> None:
        pass


_CALLBACKS = {
    TimerEventType.TIMER_CREATED: "on_timer_created",
    TimerEventType.TIMER_UPDATED: "on_timer_updated",
    TimerEventType.TIMER_DELETED: "on_timer_deleted",
}


class TimerEventBus:
    """Synchronous fan-out of timer events to subscribed observers.

    Observers are notified in subscription order, on the caller's stack. A
    failing observer is logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._observers: list[TimerObserver] = []

    def subscribe(self, observer: TimerObserver):
        """Register an observer. Subscribing the same observer twice is a no-op.

        Args:
            observer: Object implementing the TimerObserver callbacks
        """
        if any(existing is observer for existing in self._observers):
            return
        self._observers.append(observer)
        logger.debug(f"Subscribed {observer!r} to timer events")

    def unsubscribe(self, observer: TimerObserver):
        """Remove an observer. Unknown observers are ignored.

        Args:
            observer: Previously subscribed observer
        """
        self._observers = [
            existing for existing in self._observers if existing is not observer
        ]
        logger.debug(f"Unsubscribed {observer!r} from timer events")

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def publish(self, event_type: TimerEventType, payload: Any):
        """Deliver an event to every subscribed observer.

        Args:
            event_type: Which lifecycle event occurred
            payload: The timer for created/updated events, its id for deleted
        """
        callback_name = _CALLBACKS[event_type]
        logger.debug(f"Publishing [{event_type.value}] {payload}")

        # Copy so observers may unsubscribe while being notified
        for observer in list(self._observers):
            callback = getattr(observer, callback_name, None)
            if callback is None:
                continue
            try:
                callback(payload)
            except Exception as e:
                logger.error(
                    f"Error in observer {observer!r} handling {event_type.value}: {e}"
                )
